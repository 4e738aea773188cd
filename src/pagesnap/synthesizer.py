# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Accessibility tree → semantic HTML.

Walks the AX tree depth-first from its root and decides per node:

1. skip already-visited nodes and nodes outside the viewport filter
2. StaticText → its name as text; hidden → nothing
3. layout-only / ignored and not interactive → children spliced into the parent
4. ListMarker → its name as text
5. generic/group with no attributes, no name, not interactive → children only
6. otherwise an element: tag from the DOM (interactive) or the role table,
   ARIA state projected to attributes, name as text or aria-label/alt,
   ``node="<id>"`` handle on focusable/interactive nodes
7. <iframe> → replaced by the frame's own synthesized content

Interactive means ``cursor: pointer`` (inherited through the DOM) or a
click/mousedown/mouseup listener.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .config import ExtractionSettings
from .frames import BackoffSchedule, load_frame
from .geometry import ViewportFilter, has_click_listener
from .html_tree import (
    SELF_CLOSING_TAGS,
    Element,
    Fragment,
    Text,
    join_siblings,
    label_is_visible,
    serialize,
    should_emit,
)
from .models import AxNode
from .roles import (
    GENERIC_ROLES,
    INPUT_TYPES,
    LAYOUT_ROLES,
    Role,
    heading_tag,
    is_role_implied,
    tag_for_role,
)

if TYPE_CHECKING:
    from .channel import CDPChannel

logger = logging.getLogger(__name__)

# Attribute carrying the element handle used by later targeting operations.
NODE_ID_ATTRIBUTE = "node"

_BOOLEAN_PROPERTIES = frozenset({"disabled", "readonly", "required", "checked", "selected"})
_ARIA_BOOLEAN_PROPERTIES = frozenset({"busy", "invalid", "atomic", "multiselectable", "expanded", "modal", "pressed"})
_ARIA_STRING_PROPERTIES = frozenset(
    {
        "placeholder",
        "keyshortcuts",
        "roledescription",
        "live",
        "relevant",
        "autocomplete",
        "hasPopup",
        "valuemin",
        "valuemax",
        "valuetext",
        "errormessage",
    }
)
_SUPPRESSED_URL_SCHEMES = ("data:", "blob:", "file:")

Attrs = list[tuple[str, str | None]]


def aria_attributes(node: AxNode, parent: AxNode | None) -> Attrs:
    """Project AX properties onto HTML attributes, in property order."""
    attrs: Attrs = []
    for prop in node.properties:
        name = prop.name
        value = prop.value.text()

        if name in _BOOLEAN_PROPERTIES:
            if value == "true":
                attrs.append((name, None))
        elif name in _ARIA_BOOLEAN_PROPERTIES:
            if value == "true":
                attrs.append((f"aria-{name}", "true"))
        elif name in _ARIA_STRING_PROPERTIES:
            if value:
                attrs.append((f"aria-{name.lower()}", value))
        elif name == "focused":
            if value == "true":
                attrs.append(("aria-current", "true"))
        elif name == "url":
            if value and not value.startswith(_SUPPRESSED_URL_SCHEMES):
                href = "#" if value.startswith("javascript:") else value
                attrs.append(("src" if node.role_kind is Role.IMAGE else "href", href))
        elif name == "editable":
            if value == "richtext" and not (parent and parent.prop("editable")):
                attrs.append(("contenteditable", "true"))
        elif name == "hiddenRoot":
            if value == "true":
                attrs.append(("aria-hidden", "true"))
    return attrs


def tag_for_node(node: AxNode, parent: AxNode | None) -> str:
    """Tag from the role table; editable nodes outside an editable parent become form fields."""
    role = node.role_kind
    tag = heading_tag(node.prop("level")) if role is Role.HEADING else tag_for_role(role)

    editable = node.prop("editable")
    if editable and not (parent and parent.prop("editable")):
        if editable == "richtext":
            return "div"
        return "textarea" if node.prop("multiline") else "input"
    return tag


def visible_node_ids(nodes: Mapping[str, AxNode], viewport_filter: ViewportFilter) -> set[str]:
    """Ids kept by the viewport filter.

    A node is kept when its own box overlaps the viewport, when it is an
    ancestor of such a node, or when it sits under a kept combobox (popup
    options are usually detached or zero-sized).
    """
    visible: set[str] = set()
    for node_id in viewport_filter.boxes:
        if not viewport_filter.contains(node_id):
            continue
        visible.add(node_id)
        current = nodes.get(node_id)
        while current is not None and current.parent_id:
            visible.add(current.parent_id)
            current = nodes.get(current.parent_id)

    comboboxes = [nodes[i] for i in visible if i in nodes and nodes[i].role_kind is Role.COMBOBOX]
    for combobox in comboboxes:
        queue = deque(combobox.child_ids)
        seen: set[str] = set()
        while queue:
            descendant_id = queue.popleft()
            if descendant_id in seen:
                continue
            seen.add(descendant_id)
            visible.add(descendant_id)
            descendant = nodes.get(descendant_id)
            if descendant is not None:
                queue.extend(descendant.child_ids)
    return visible


@dataclass(slots=True)
class _RenderContext:
    """State of one tree walk; never shared between calls."""

    nodes: dict[str, AxNode]
    channel: CDPChannel | None
    frame_context_id: str | None = None
    visible: set[str] | None = None
    visited: dict[str, AxNode] = field(default_factory=dict)


class AxTreeSynthesizer:
    """Renders AX node lists to HTML using the page's interactivity maps."""

    def __init__(
        self,
        cursor_pointer_nodes: Mapping[int, str],
        event_listeners: Mapping[int, list[str]],
        *,
        settings: ExtractionSettings | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.cursor_pointer_nodes = cursor_pointer_nodes
        self.event_listeners = event_listeners
        settings = settings or ExtractionSettings()
        self.schedule = BackoffSchedule(
            max_attempts=settings.frame_max_attempts,
            base_delay=settings.frame_retry_delay,
            min_nodes=settings.frame_min_nodes,
        )
        self._sleep = sleep

    def is_interactive(self, node: AxNode) -> bool:
        backend_id = node.backend_dom_node_id
        if not backend_id:
            return False
        return backend_id in self.cursor_pointer_nodes or has_click_listener(self.event_listeners.get(backend_id))

    async def render(
        self,
        nodes: list[AxNode],
        *,
        channel: CDPChannel | None = None,
        frame_context_id: str | None = None,
        viewport_filter: ViewportFilter | None = None,
    ) -> Fragment:
        """Render the tree rooted at the node without a parent.

        *channel* is only used to load embedded frames; without one,
        iframes render without their content.
        """
        node_map = {node.node_id: node for node in nodes}
        root = next((node for node in nodes if not node.parent_id), None)
        if root is None:
            return []

        ctx = _RenderContext(nodes=node_map, channel=channel, frame_context_id=frame_context_id)
        if viewport_filter is not None:
            ctx.visible = visible_node_ids(node_map, viewport_filter)
        return await self._render_node(ctx, root)

    async def to_html(self, nodes: list[AxNode], **kwargs) -> str:
        return serialize(await self.render(nodes, **kwargs))

    async def _render_node(self, ctx: _RenderContext, node: AxNode) -> Fragment:
        if node.node_id in ctx.visited:
            return []
        ctx.visited[node.node_id] = node

        if ctx.visible is not None and node.node_id not in ctx.visible:
            return []

        role = node.role_kind
        if role is Role.STATIC_TEXT:
            return [Text(node.label)] if node.label else []

        interactive = self.is_interactive(node)
        layout_only = role in LAYOUT_ROLES

        if node.prop("hidden") == "true":
            return []

        if not interactive and (layout_only or node.ignored):
            return await self._render_children(ctx, node)

        if role is Role.LIST_MARKER:
            return [Text(node.label)] if node.label else []

        parent = ctx.visited.get(node.parent_id) if node.parent_id else None
        attrs = aria_attributes(node, parent)

        generic = role in GENERIC_ROLES
        if generic and not attrs and not node.label and not interactive:
            return await self._render_children(ctx, node)

        if interactive:
            tag = self.cursor_pointer_nodes.get(node.backend_dom_node_id) or tag_for_node(node, parent)
        else:
            tag = tag_for_node(node, parent)

        if tag == "input" and role in INPUT_TYPES:
            attrs.append(("type", INPUT_TYPES[role]))

        value = node.value_text
        if value and tag not in ("textarea", "div"):
            attrs.append(("value", value))

        if not layout_only and not generic and node.role_name and not is_role_implied(tag, role, node.role_name):
            attrs.append(("role", node.role_name))

        if tag == "iframe":
            children = await self._render_frame(ctx, node)
        else:
            children = await self._render_children(ctx, node)

        label = node.label
        if label:
            if not children and tag not in SELF_CLOSING_TAGS:
                children = [Text(label)]
            elif tag in SELF_CLOSING_TAGS or not label_is_visible(label, children):
                attrs.append(("alt" if tag == "img" else "aria-label", label))

        if not should_emit(children, attrs):
            return []

        if (node.prop("focusable") == "true" or interactive) and node.backend_dom_node_id:
            handle = str(node.backend_dom_node_id)
            if ctx.frame_context_id:
                handle = f"{ctx.frame_context_id}:{handle}"
            attrs.append((NODE_ID_ATTRIBUTE, handle))

        if tag == "iframe" and children:
            return children

        return [Element(tag, attrs, children)]

    async def _render_children(self, ctx: _RenderContext, node: AxNode) -> Fragment:
        fragments = []
        for child_id in node.child_ids:
            child = ctx.nodes.get(child_id)
            if child is not None:
                fragments.append(await self._render_node(ctx, child))
        return join_siblings(fragments)

    async def _render_frame(self, ctx: _RenderContext, node: AxNode) -> Fragment:
        # Frames are walked one at a time; the parent walk waits for each.
        if ctx.channel is None or not node.backend_dom_node_id:
            return []
        content = await load_frame(ctx.channel, node.backend_dom_node_id, self.schedule, self._sleep)
        if content is None:
            return []
        # Boxes are measured for the top-level tree only, so frame content is not viewport-filtered.
        return await self.render(
            content.nodes,
            channel=content.channel,
            frame_context_id=content.frame_context_id or ctx.frame_context_id,
        )


async def synthesize(
    nodes: list[AxNode],
    cursor_pointer_nodes: Mapping[int, str],
    event_listeners: Mapping[int, list[str]],
    *,
    channel: CDPChannel | None = None,
    frame_context_id: str | None = None,
    viewport_filter: ViewportFilter | None = None,
    settings: ExtractionSettings | None = None,
) -> str:
    """Render an AX node list to one HTML string."""
    synthesizer = AxTreeSynthesizer(cursor_pointer_nodes, event_listeners, settings=settings)
    return await synthesizer.to_html(
        nodes,
        channel=channel,
        frame_context_id=frame_context_id,
        viewport_filter=viewport_filter,
    )
