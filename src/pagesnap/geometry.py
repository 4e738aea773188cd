# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Node geometry and interactivity lookups.

Box models and DOM event listeners are fetched per node, in fixed-size
batches: all requests of one batch run concurrently, batches run one
after another. A node whose lookup fails is simply absent from the
result; one bad node never aborts the pass.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

from .errors import ChannelError
from .models import AxNode
from .roles import INTERACTIVE_ROLES

if TYPE_CHECKING:
    from .channel import CDPChannel

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

CLICK_EVENT_TYPES = frozenset({"click", "mousedown", "mouseup"})


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned rectangle in CSS pixels."""

    x: float
    y: float
    width: float
    height: float


# Viewport geometry uses the same shape: size of the visual viewport,
# x/y from its scroll offset.
ViewportBox = BoundingBox


def box_from_quad(points: Sequence[float]) -> BoundingBox:
    """Bounding rectangle of a content quad ``[x1, y1, x2, y2, x3, y3, x4, y4]``.

    Rotation and skew are discarded.
    """
    if len(points) < 8:
        raise ValueError(f"content quad needs 8 numbers, got {len(points)}")
    xs = points[0:8:2]
    ys = points[1:8:2]
    x, y = min(xs), min(ys)
    return BoundingBox(x=x, y=y, width=max(xs) - x, height=max(ys) - y)


def is_box_in_viewport(box: BoundingBox, viewport: ViewportBox, check_horizontal: bool = False) -> bool:
    """True when *box* at least partly overlaps *viewport*.

    Only the vertical axis is checked by default so that content scrolled
    sideways is kept.
    """
    if box.y >= viewport.height or box.y + box.height <= 0:
        return False
    if check_horizontal:
        return not (box.x >= viewport.width or box.x + box.width <= 0)
    return True


@dataclass(slots=True)
class ViewportFilter:
    """Viewport geometry plus measured boxes (AX node id -> box) for one tree."""

    viewport: ViewportBox
    boxes: dict[str, BoundingBox] = field(default_factory=dict)
    check_horizontal: bool = False

    def contains(self, node_id: str) -> bool:
        box = self.boxes.get(node_id)
        return box is not None and is_box_in_viewport(box, self.viewport, self.check_horizontal)


def select_box_candidates(nodes: Iterable[AxNode]) -> list[AxNode]:
    """Nodes worth measuring for viewport filtering.

    Focusable, interactive-role and named nodes are the interesting ones,
    but any node bound to a DOM node qualifies: a missed box would silently
    drop visible content.
    """
    candidates = []
    for node in nodes:
        if not node.backend_dom_node_id:
            continue
        if (
            node.prop("focusable") == "true"
            or node.role_kind in INTERACTIVE_ROLES
            or node.label
            or node.backend_dom_node_id
        ):
            candidates.append(node)
    return candidates


async def run_in_batches(
    items: Sequence[T],
    batch_size: int,
    fetch: Callable[[T], Awaitable[R | None]],
) -> list[tuple[T, R]]:
    """Run *fetch* over *items*, ``batch_size`` at a time.

    Results of None and ChannelError failures are dropped; other exceptions
    propagate.
    """
    results: list[tuple[T, R]] = []
    for start in range(0, len(items), batch_size):
        batch = items[start : start + batch_size]
        outcomes = await asyncio.gather(*(fetch(item) for item in batch), return_exceptions=True)
        for item, outcome in zip(batch, outcomes, strict=True):
            if isinstance(outcome, ChannelError):
                logger.debug("Lookup failed for %r: %s", item, outcome)
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            if outcome is not None:
                results.append((item, outcome))
    return results


async def resolve_boxes(
    channel: CDPChannel,
    nodes: Iterable[AxNode],
    batch_size: int = 50,
) -> dict[str, BoundingBox]:
    """Measure candidate nodes. Returns AX node id -> bounding box."""
    candidates = select_box_candidates(nodes)

    async def _measure(node: AxNode) -> BoundingBox | None:
        quad = await channel.get_content_quad(node.backend_dom_node_id)
        if not quad:
            return None
        try:
            return box_from_quad(quad)
        except ValueError:
            logger.debug("Unusable content quad for node %s", node.node_id)
            return None

    measured = await run_in_batches(candidates, batch_size, _measure)
    return {node.node_id: box for node, box in measured}


async def resolve_listeners(
    channel: CDPChannel,
    backend_node_ids: Sequence[int],
    batch_size: int = 20,
) -> dict[int, list[str]]:
    """Event types registered on each DOM node. Nodes without listeners are omitted."""

    async def _listeners(backend_node_id: int) -> list[str] | None:
        async with channel.remote_object(backend_node_id) as object_id:
            if not object_id:
                return None
            types = await channel.get_event_listener_types(object_id)
        return types or None

    found = await run_in_batches(backend_node_ids, batch_size, _listeners)
    return dict(found)


def has_click_listener(event_types: Iterable[str] | None) -> bool:
    return bool(event_types) and any(t in CLICK_EVENT_TYPES for t in event_types)


async def get_viewport(channel: CDPChannel) -> ViewportBox:
    """Visual viewport size and scroll offset in CSS pixels."""
    metrics = await channel.get_layout_metrics()
    viewport = metrics.get("cssVisualViewport", {})
    return ViewportBox(
        x=viewport.get("offsetX", 0),
        y=viewport.get("offsetY", 0),
        width=viewport.get("clientWidth", 0),
        height=viewport.get("clientHeight", 0),
    )
