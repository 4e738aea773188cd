# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Embedded frame loading for the synthesizer.

An iframe's accessibility tree is often still empty right after the frame
loads, so each fetch goes through a small state machine:

    PENDING --(> min_nodes - 1 nodes)--> POPULATED
    PENDING --(max_attempts exhausted)--> EMPTY

with a linear backoff between attempts. A same-origin frame is read
through the parent target; when that fails (cross-origin, out-of-process)
a dedicated target is attached and node handles inside it are prefixed
with that target id.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from .errors import ChannelError, FrameAttachError
from .models import AxNode, parse_ax_nodes

if TYPE_CHECKING:
    from .channel import CDPChannel

logger = logging.getLogger(__name__)


class FrameFetchState(StrEnum):
    PENDING = "pending"
    POPULATED = "populated"
    EMPTY = "empty"


@dataclass(frozen=True, slots=True)
class BackoffSchedule:
    max_attempts: int = 4
    base_delay: float = 0.3  # seconds
    min_nodes: int = 3

    def delay_after(self, attempt: int) -> float:
        """Sleep before the next try, after *attempt* (1-based) came back empty."""
        return self.base_delay * attempt


@dataclass(slots=True)
class FrameFetch:
    state: FrameFetchState = FrameFetchState.PENDING
    attempts: int = 0
    nodes: list[dict] = field(default_factory=list)


async def wait_for_populated_tree(
    fetch: Callable[[], Awaitable[list[dict]]],
    schedule: BackoffSchedule,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> FrameFetch:
    """Call *fetch* until it returns enough nodes or attempts run out.

    Exceptions from *fetch* propagate; an EMPTY result still carries the
    nodes from the last attempt.
    """
    result = FrameFetch()
    while result.state is FrameFetchState.PENDING:
        result.nodes = await fetch()
        result.attempts += 1
        if len(result.nodes) >= schedule.min_nodes:
            result.state = FrameFetchState.POPULATED
        elif result.attempts >= schedule.max_attempts:
            result.state = FrameFetchState.EMPTY
        else:
            await sleep(schedule.delay_after(result.attempts))
    return result


@dataclass(slots=True)
class FrameContent:
    """Accessibility nodes of one embedded frame and the channel they live on."""

    nodes: list[AxNode]
    channel: CDPChannel
    frame_context_id: str | None = None
    state: FrameFetchState = FrameFetchState.POPULATED


async def load_frame(
    channel: CDPChannel,
    iframe_backend_node_id: int,
    schedule: BackoffSchedule,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> FrameContent | None:
    """Fetch the accessibility tree behind an ``<iframe>`` DOM node.

    Returns None when the node has no frame or every path failed.
    """
    try:
        node = await channel.describe_node(iframe_backend_node_id)
    except ChannelError as e:
        logger.info("Could not describe iframe node %d: %s", iframe_backend_node_id, e)
        return None

    frame_id = node.get("frameId")
    if not frame_id:
        logger.info("Skipping iframe node %d without frameId", iframe_backend_node_id)
        return None

    try:
        fetched = await wait_for_populated_tree(lambda: channel.get_full_ax_tree(frame_id=frame_id), schedule, sleep)
        frame_channel, frame_context_id = channel, None
    except ChannelError as e:
        logger.info("Frame %s not readable from parent target (%s), attaching", frame_id, _frame_src(node) or e)
        try:
            frame_channel = await channel.attach_to_frame(frame_id)
            fetched = await wait_for_populated_tree(frame_channel.get_full_ax_tree, schedule, sleep)
        except (ChannelError, FrameAttachError) as attach_error:
            logger.info("Frame %s unavailable: %s", frame_id, attach_error)
            return None
        frame_context_id = frame_channel.target_id

    if fetched.state is FrameFetchState.EMPTY:
        logger.warning("Frame %s still sparse after %d attempts", frame_id, fetched.attempts)

    return FrameContent(
        nodes=parse_ax_nodes(fetched.nodes),
        channel=frame_channel,
        frame_context_id=frame_context_id,
        state=fetched.state,
    )


def _frame_src(node: dict) -> str:
    attrs = node.get("attributes") or []
    for i in range(0, len(attrs) - 1, 2):
        if attrs[i] == "src":
            return attrs[i + 1]
    return ""
