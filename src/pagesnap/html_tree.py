# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Intermediate HTML tree built by the synthesizer and serialized in one pass.

A rendered AX subtree is a *fragment*: a list of nodes, because an elided
wrapper contributes its children directly to the parent.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

SELF_CLOSING_TAGS = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    }
)

_WS_RE = re.compile(r"\s+")


@dataclass(slots=True)
class Text:
    value: str


@dataclass(slots=True)
class LineBreak:
    """Separator between two adjacent inline text runs."""


@dataclass(slots=True)
class Element:
    tag: str
    attrs: list[tuple[str, str | None]] = field(default_factory=list)  # None = bare boolean attribute
    children: list[HtmlNode] = field(default_factory=list)


HtmlNode = Text | LineBreak | Element
Fragment = list[HtmlNode]


def escape(value: str) -> str:
    return escape_text(value).replace('"', "&quot;")


def escape_text(value: str) -> str:
    return value.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def is_inline(fragment: Fragment) -> bool:
    """A fragment reads as inline text when it starts with text rather than a tag."""
    return bool(fragment) and isinstance(fragment[0], Text)


def join_siblings(fragments: Iterable[Fragment]) -> Fragment:
    """Concatenate sibling fragments, separating adjacent inline runs with a line break.

    Empty fragments are skipped and do not reset the inline state.
    """
    joined: Fragment = []
    last_inline = False
    for fragment in fragments:
        if not fragment:
            continue
        inline = is_inline(fragment)
        if inline and last_inline:
            joined.append(LineBreak())
        joined.extend(fragment)
        last_inline = inline
    return joined


def _walk(fragment: Fragment) -> Iterator[HtmlNode]:
    for node in fragment:
        yield node
        if isinstance(node, Element):
            yield from _walk(node.children)


def text_content(fragment: Fragment) -> str:
    return "".join(node.value for node in _walk(fragment) if isinstance(node, Text))


def _normalize(value: str) -> str:
    return _WS_RE.sub("", value).lower()


def label_is_visible(label: str, children: Fragment) -> bool:
    """True when *label* already appears in the children's text or in a descendant label.

    Comparison ignores whitespace and case.
    """
    needle = _normalize(label)
    if needle in _normalize(text_content(children)):
        return True
    existing = "".join(
        value
        for node in _walk(children)
        if isinstance(node, Element)
        for name, value in node.attrs
        if name in ("aria-label", "alt") and value
    )
    return needle in _normalize(existing)


def should_emit(children: Fragment, attrs: list[tuple[str, str | None]]) -> bool:
    """Emission gate: an element with neither content nor attributes is dropped."""
    return bool(children) or bool(attrs)


def _render_attrs(attrs: list[tuple[str, str | None]]) -> str:
    if not attrs:
        return ""
    parts = [name if value is None else f'{name}="{escape(value)}"' for name, value in attrs]
    return " " + " ".join(parts)


def _serialize_into(out: list[str], fragment: Fragment) -> None:
    for node in fragment:
        if isinstance(node, Text):
            out.append(escape_text(node.value))
        elif isinstance(node, LineBreak):
            out.append("<br>")
        elif node.tag in SELF_CLOSING_TAGS:
            out.append(f"<{node.tag}{_render_attrs(node.attrs)}/>")
        else:
            out.append(f"<{node.tag}{_render_attrs(node.attrs)}>")
            _serialize_into(out, node.children)
            out.append(f"</{node.tag}>")


def serialize(fragment: Fragment) -> str:
    out: list[str] = []
    _serialize_into(out, fragment)
    return "".join(out)
