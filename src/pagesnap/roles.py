# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Accessibility roles and the role → HTML tag tables.

Roles arrive from CDP as free-form strings. They are parsed once into the
closed :class:`Role` enum; anything unrecognised becomes ``Role.OTHER`` and
renders as ``div`` while the raw string is kept on the node for the
``role=`` attribute.
"""

from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    # Chromium-internal roles
    ROOT_WEB_AREA = "RootWebArea"
    WEB_AREA = "WebArea"
    WEB_ROOT = "WebRoot"
    IFRAME = "Iframe"
    STATIC_TEXT = "StaticText"
    LIST_MARKER = "ListMarker"
    LAYOUT_TABLE = "LayoutTable"
    LAYOUT_TABLE_ROW = "LayoutTableRow"
    LAYOUT_TABLE_CELL = "LayoutTableCell"
    LINE_BREAK = "LineBreak"
    INLINE_TEXT_BOX = "InlineTextBox"
    MENU_LIST_POPUP = "MenuListPopup"
    LABEL_TEXT = "LabelText"
    DISCLOSURE_TRIANGLE = "DisclosureTriangle"
    # ARIA roles
    PRESENTATION = "presentation"
    NONE = "none"
    GENERIC = "generic"
    GROUP = "group"
    LINK = "link"
    BUTTON = "button"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    TEXTBOX = "textbox"
    SEARCHBOX = "searchbox"
    SWITCH = "switch"
    SLIDER = "slider"
    SPINBUTTON = "spinbutton"
    COMBOBOX = "combobox"
    MENUITEM = "menuitem"
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    LIST = "list"
    LISTITEM = "listitem"
    ROW = "row"
    CELL = "cell"
    COLUMNHEADER = "columnheader"
    ROWHEADER = "rowheader"
    DIALOG = "dialog"
    RADIOGROUP = "radiogroup"
    BANNER = "banner"
    NAVIGATION = "navigation"
    CONTENTINFO = "contentinfo"
    COMPLEMENTARY = "complementary"
    REGION = "region"
    SEARCH = "search"
    IMAGE = "image"
    SEPARATOR = "separator"
    STRONG = "strong"
    # Anything else
    OTHER = "<other>"

    @classmethod
    def parse(cls, name: str | None) -> Role:
        if not name:
            return cls.OTHER
        try:
            return cls(name)
        except ValueError:
            return cls.OTHER


DEFAULT_TAG = "div"

ROLE_TO_TAG: dict[Role, str] = {
    Role.LINK: "a",
    Role.CHECKBOX: "input",
    Role.RADIO: "input",
    Role.TEXTBOX: "input",
    Role.SEARCHBOX: "input",
    Role.SWITCH: "input",
    Role.SLIDER: "input",
    Role.SPINBUTTON: "input",
    Role.COMBOBOX: "select",
    Role.HEADING: "h2",  # overridden by the level property
    Role.PARAGRAPH: "p",
    Role.LIST: "ul",
    Role.LISTITEM: "li",
    Role.ROW: "tr",
    Role.CELL: "td",
    Role.COLUMNHEADER: "th",
    Role.ROWHEADER: "th",
    Role.WEB_ROOT: "body",
    Role.ROOT_WEB_AREA: "body",
    Role.MENU_LIST_POPUP: "menu",
    Role.DIALOG: "div",
    Role.RADIOGROUP: "fieldset",
    Role.WEB_AREA: "iframe",
    Role.IFRAME: "iframe",
    Role.GENERIC: "div",
    Role.BANNER: "header",
    Role.NAVIGATION: "nav",
    Role.CONTENTINFO: "footer",
    Role.COMPLEMENTARY: "aside",
    Role.REGION: "section",
    Role.SEARCH: "div",
    Role.IMAGE: "img",
    Role.SEPARATOR: "hr",
    Role.LABEL_TEXT: "label",
    Role.STRONG: "b",
    Role.DISCLOSURE_TRIANGLE: "details",
}

# Layout-only roles: their wrapper is dropped unless the node is interactive.
LAYOUT_ROLES = frozenset(
    {
        Role.LAYOUT_TABLE,
        Role.LAYOUT_TABLE_ROW,
        Role.LAYOUT_TABLE_CELL,
        Role.LINE_BREAK,
        Role.INLINE_TEXT_BOX,
        Role.PRESENTATION,
        Role.NONE,
    }
)

GENERIC_ROLES = frozenset({Role.GENERIC, Role.GROUP})

# Roles whose nodes are always measured for viewport filtering.
INTERACTIVE_ROLES = frozenset(
    {
        Role.BUTTON,
        Role.LINK,
        Role.CHECKBOX,
        Role.RADIO,
        Role.COMBOBOX,
        Role.TEXTBOX,
        Role.MENUITEM,
    }
)

INPUT_TYPES: dict[Role, str] = {
    Role.CHECKBOX: "checkbox",
    Role.SWITCH: "checkbox",
    Role.RADIO: "radio",
    Role.SEARCHBOX: "search",
    Role.SLIDER: "range",
    Role.SPINBUTTON: "number",
}

HEADING_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})


def tag_for_role(role: Role) -> str:
    return ROLE_TO_TAG.get(role, DEFAULT_TAG)


def heading_tag(level: str) -> str:
    """Map an AX ``level`` property to h1..h6 (missing or zero → h2)."""
    try:
        n = int(level)
    except ValueError:
        n = 0
    if not n:
        n = 2
    return f"h{min(max(n, 1), 6)}"


def is_role_implied(tag: str, role: Role, role_name: str) -> bool:
    """True when *tag* already conveys *role*, so ``role=`` would be redundant."""
    if role_name == tag:
        return True
    if role is not Role.OTHER and ROLE_TO_TAG.get(role) == tag:
        return True
    if (tag, role) in (("select", Role.COMBOBOX), ("textarea", Role.TEXTBOX)):
        return True
    return role is Role.HEADING and tag in HEADING_TAGS
