# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""DOM snapshot decoder.

Turns the columnar ``DOMSnapshot.captureSnapshot`` payload into per-node
records and derives three page facts from it:

- meta: ``og:*`` / ``description`` <meta> tags from <head>
- is_pdf: Chrome's single-<embed> PDF viewer shape
- cursor_pointer_nodes: backendNodeId -> tag for every node rendered with
  ``cursor: pointer`` and every DOM descendant of such a node
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from pydantic import ValidationError

from .models import DocumentSnapshot, NodeTreeSnapshot

logger = logging.getLogger(__name__)

ELEMENT_NODE = 1
TEXT_NODE = 3
DOCUMENT_FRAGMENT_NODE = 11
_RETAINED_NODE_TYPES = frozenset({ELEMENT_NODE, TEXT_NODE, DOCUMENT_FRAGMENT_NODE})

PDF_MIME_TYPES = frozenset(
    {
        "application/pdf",
        "application/x-pdf",
        "application/x-google-chrome-pdf",
    }
)

# Parameters for DOMSnapshot.captureSnapshot: only the cursor style is needed.
CAPTURE_PARAMS = {
    "computedStyles": ["cursor"],
    "includePaintOrder": False,
    "includeDOMRects": False,
    "includeBlendedBackgroundColors": False,
    "includeTextColorOpacities": False,
}


@dataclass(slots=True)
class DecodedNode:
    """One retained snapshot node. String fields are indices into ``strings``."""

    attributes: list[int]
    node_type: int
    node_name: int
    node_value: int
    backend_node_id: int
    parent_index: int
    option_selected: bool
    is_clickable: bool
    input_checked: bool
    layout_index: int  # -1 when the node has no layout entry
    shadow_root_type: int | None = None
    input_value: int | None = None
    text_value: int | None = None
    content_document_index: int | None = None


@dataclass(slots=True)
class DecodedDocument:
    nodes: dict[int, DecodedNode] = field(default_factory=dict)
    children: dict[int, list[int]] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class SnapshotAnalysis:
    meta: dict[str, str] = field(default_factory=dict)
    is_pdf: bool = False
    cursor_pointer_nodes: dict[int, str] = field(default_factory=dict)


def _at(seq: list[int], i: int, default: int = -1) -> int:
    return seq[i] if 0 <= i < len(seq) else default


def decode_document(doc: DocumentSnapshot) -> DecodedDocument:
    """Decode one document's columns into node records and a children index.

    Only element, text and document-fragment nodes are kept; a text node
    with no layout entry (nothing rendered) is dropped.
    """
    nodes = doc.nodes
    text_values = nodes.text_value.as_map()
    input_values = nodes.input_value.as_map()
    content_docs = nodes.content_document_index.as_map()
    shadow_roots = nodes.shadow_root_type.as_map()
    option_selected = nodes.option_selected.as_set()
    clickable = nodes.is_clickable.as_set()
    input_checked = nodes.input_checked.as_set()
    layout_map = {node_index: i for i, node_index in enumerate(doc.layout.node_index)}

    decoded = DecodedDocument()
    for node_index, parent_index in enumerate(nodes.parent_index):
        node_type = _at(nodes.node_type, node_index)
        if node_type not in _RETAINED_NODE_TYPES:
            continue
        layout_index = layout_map.get(node_index, -1)
        if node_type == TEXT_NODE and layout_index == -1:
            continue

        decoded.nodes[node_index] = DecodedNode(
            attributes=nodes.attributes[node_index] if node_index < len(nodes.attributes) else [],
            node_type=node_type,
            node_name=_at(nodes.node_name, node_index),
            node_value=_at(nodes.node_value, node_index),
            backend_node_id=_at(nodes.backend_node_id, node_index, 0),
            parent_index=parent_index,
            option_selected=node_index in option_selected,
            is_clickable=node_index in clickable,
            input_checked=node_index in input_checked,
            layout_index=layout_index,
            shadow_root_type=shadow_roots.get(node_index),
            input_value=input_values.get(node_index),
            text_value=text_values.get(node_index),
            content_document_index=content_docs.get(node_index),
        )
        if parent_index >= 0:
            decoded.children.setdefault(parent_index, []).append(node_index)
    return decoded


class _Strings:
    """Accessor over the shared string pool."""

    __slots__ = ("_pool",)

    def __init__(self, pool: list[str]) -> None:
        self._pool = pool

    def get(self, index: int | None) -> str:
        if index is None or not 0 <= index < len(self._pool):
            return ""
        return self._pool[index]

    def attributes(self, flat: list[int]) -> dict[str, str]:
        """Decode flattened [key, value, key, value, ...] pairs; keys lowercased."""
        attrs: dict[str, str] = {}
        for i in range(0, len(flat) - 1, 2):
            attrs[self.get(flat[i]).lower()] = self.get(flat[i + 1])
        return attrs


def _element_children(doc: DecodedDocument, parent: int) -> list[int]:
    return [i for i in doc.children.get(parent, []) if doc.nodes[i].node_type == ELEMENT_NODE]


def _find_child(doc: DecodedDocument, strings: _Strings, parent: int, name: str) -> int | None:
    for i in _element_children(doc, parent):
        if strings.get(doc.nodes[i].node_name).upper() == name:
            return i
    return None


def detect_pdf(doc: DecodedDocument, strings: _Strings) -> bool:
    """Match exactly ``<html>[<head>]<body><embed type=pdf></body></html>``."""
    roots = doc.children.get(0, [])
    if len(roots) != 1 or strings.get(doc.nodes[roots[0]].node_name).upper() != "HTML":
        return False
    html = roots[0]

    html_children = [strings.get(doc.nodes[i].node_name).upper() for i in doc.children.get(html, [])]
    if html_children not in (["HEAD", "BODY"], ["BODY"]):
        return False
    body = doc.children[html][-1]

    body_children = doc.children.get(body, [])
    if len(body_children) != 1:
        return False
    embed = doc.nodes[body_children[0]]
    if strings.get(embed.node_name).upper() != "EMBED":
        return False

    values = {strings.get(idx) for idx in embed.attributes[1::2]}
    return not values.isdisjoint(PDF_MIME_TYPES)


def extract_meta(doc: DecodedDocument, strings: _Strings) -> dict[str, str]:
    """Collect og:* and description <meta> content from <head>.

    Keys are the og: suffix or the meta name. Later tags overwrite earlier
    ones with the same key, so ``og:description`` after
    ``name=description`` wins.
    """
    meta: dict[str, str] = {}
    roots = _element_children(doc, 0)
    if not roots:
        return meta
    head = _find_child(doc, strings, roots[0], "HEAD")
    if head is None:
        return meta

    for child in doc.children.get(head, []):
        node = doc.nodes[child]
        if strings.get(node.node_name).upper() != "META":
            continue
        attrs = strings.attributes(node.attributes)
        prop = attrs.get("property", "").lower()
        name = attrs.get("name", "").lower()
        content = attrs.get("content", "")
        if not content:
            continue
        if prop.startswith("og:"):
            key = prop[3:]
        elif name == "description":
            key = name
        else:
            continue
        if key:
            meta[key] = content
    return meta


def _tree_children(nodes: NodeTreeSnapshot) -> dict[int, list[int]]:
    children: dict[int, list[int]] = {}
    for node_index, parent_index in enumerate(nodes.parent_index):
        if parent_index >= 0:
            children.setdefault(parent_index, []).append(node_index)
    return children


def find_cursor_pointer_nodes(documents: list[DocumentSnapshot], strings: _Strings) -> dict[int, str]:
    """Nodes whose first computed style is ``pointer``, plus all their descendants.

    A descendant inherits the seed's interactivity even if its own cursor
    differs. Each backendNodeId is expanded at most once, which also bounds
    the walk on a malformed parent cycle.
    """
    pointer_nodes: dict[int, str] = {}
    processed: set[int] = set()

    for doc in documents:
        nodes = doc.nodes
        children = _tree_children(nodes)

        def tag_of(node_index: int, _nodes: NodeTreeSnapshot = nodes) -> str:
            return (strings.get(_at(_nodes.node_name, node_index, -1)) or "div").lower()

        for i, node_index in enumerate(doc.layout.node_index):
            styles = doc.layout.styles[i] if i < len(doc.layout.styles) else []
            if not styles or strings.get(styles[0]) != "pointer":
                continue
            backend_id = _at(nodes.backend_node_id, node_index, 0)
            if not backend_id:
                continue
            pointer_nodes[backend_id] = tag_of(node_index)
            processed.add(backend_id)

            stack = list(reversed(children.get(node_index, [])))
            while stack:
                child = stack.pop()
                child_backend_id = _at(nodes.backend_node_id, child, 0)
                if not child_backend_id or child_backend_id in processed:
                    continue
                pointer_nodes[child_backend_id] = tag_of(child)
                processed.add(child_backend_id)
                stack.extend(reversed(children.get(child, [])))

    return pointer_nodes


def analyze_snapshot(snapshot: dict, mime_type: str | None = None) -> SnapshotAnalysis:
    """Decode a raw ``DOMSnapshot.captureSnapshot`` result.

    A missing or malformed main document yields an empty analysis rather
    than an error. Malformed secondary documents are skipped for the
    cursor scan.
    """
    # a bad entry keeps its slot so later indices still line up
    strings = _Strings([s if isinstance(s, str) else "" for s in snapshot.get("strings", [])])
    raw_documents = snapshot.get("documents") or []

    documents: list[DocumentSnapshot] = []
    for position, raw in enumerate(raw_documents):
        try:
            documents.append(DocumentSnapshot.model_validate(raw))
        except ValidationError as e:
            if position == 0:
                logger.warning("Main snapshot document is malformed: %s", e.errors()[0].get("msg", ""))
                return SnapshotAnalysis(is_pdf=mime_type == "application/pdf")
            logger.warning("Skipping malformed snapshot document %d", position)

    if not documents:
        return SnapshotAnalysis(is_pdf=mime_type == "application/pdf")

    main = decode_document(documents[0])
    return SnapshotAnalysis(
        meta=extract_meta(main, strings),
        is_pdf=detect_pdf(main, strings),
        cursor_pointer_nodes=find_cursor_pointer_nodes(documents, strings),
    )
