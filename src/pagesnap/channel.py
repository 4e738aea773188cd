# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""CDP request/response channel over a Playwright ``CDPSession``.

A channel is bound to one debugging target: the page itself or an
out-of-process iframe attached on demand. Every command runs under an
individual timeout and every failure surfaces as ChannelError, so callers
decide per call site whether a failure is fatal or just missing data.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager, suppress

from playwright.async_api import CDPSession, Page

from .errors import ChannelError, FrameAttachError
from .snapshot import CAPTURE_PARAMS

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 15.0


class CDPChannel:
    """Typed CDP commands for one target."""

    def __init__(
        self,
        session: CDPSession,
        *,
        page: Page | None = None,
        target_id: str = "",
        timeout: float = _DEFAULT_TIMEOUT,
    ) -> None:
        self._session = session
        self._page = page
        self.target_id = target_id
        self.timeout = timeout
        self._frame_channels: list[CDPChannel] = []

    @classmethod
    async def for_page(cls, page: Page, timeout: float = _DEFAULT_TIMEOUT) -> CDPChannel:
        """Open a CDP session on *page* and enable the domains extraction needs."""
        session = await page.context.new_cdp_session(page)
        channel = cls(session, page=page, timeout=timeout)
        for domain in ("DOM", "DOMSnapshot", "Accessibility"):
            await channel.send(f"{domain}.enable")
        return channel

    async def send(self, method: str, params: dict | None = None) -> dict:
        try:
            async with asyncio.timeout(self.timeout):
                result = await self._session.send(method, params or {})
        except TimeoutError as e:
            raise ChannelError(f"{method} timed out after {self.timeout}s", method=method) from e
        except Exception as e:
            raise ChannelError(f"{method} failed: {e}", method=method) from e
        return result if isinstance(result, dict) else {}

    # ── Accessibility / snapshot ───────────────────────────────────

    async def get_full_ax_tree(self, frame_id: str | None = None) -> list[dict]:
        params = {"frameId": frame_id} if frame_id else {}
        result = await self.send("Accessibility.getFullAXTree", params)
        nodes = result.get("nodes", [])
        return nodes if isinstance(nodes, list) else []

    async def capture_snapshot(self) -> dict:
        return await self.send("DOMSnapshot.captureSnapshot", CAPTURE_PARAMS)

    # ── DOM ─────────────────────────────────────────────────────────

    async def describe_node(self, backend_node_id: int) -> dict:
        result = await self.send("DOM.describeNode", {"backendNodeId": backend_node_id, "depth": -1})
        return result.get("node", {})

    async def get_content_quad(self, backend_node_id: int) -> list[float]:
        result = await self.send("DOM.getBoxModel", {"backendNodeId": backend_node_id})
        return result.get("model", {}).get("content", [])

    async def get_layout_metrics(self) -> dict:
        return await self.send("Page.getLayoutMetrics")

    async def query_outer_html(self, selector: str) -> str | None:
        """outerHTML of the first element matching *selector*, or None."""
        document = await self.send("DOM.getDocument", {"depth": 1})
        root_id = document.get("root", {}).get("nodeId")
        if not root_id:
            return None
        found = await self.send("DOM.querySelector", {"nodeId": root_id, "selector": selector})
        node_id = found.get("nodeId")
        if not node_id:
            return None
        result = await self.send("DOM.getOuterHTML", {"nodeId": node_id})
        return result.get("outerHTML", "")

    # ── Runtime objects / listeners ─────────────────────────────────

    @asynccontextmanager
    async def remote_object(self, backend_node_id: int) -> AsyncGenerator[str | None, None]:
        """Resolve a DOM node to a remote object id, released on exit."""
        result = await self.send("DOM.resolveNode", {"backendNodeId": backend_node_id})
        object_id = result.get("object", {}).get("objectId")
        try:
            yield object_id
        finally:
            if object_id:
                with suppress(ChannelError):
                    await self.send("Runtime.releaseObject", {"objectId": object_id})

    async def get_event_listener_types(self, object_id: str) -> list[str]:
        result = await self.send("DOMDebugger.getEventListeners", {"objectId": object_id})
        return [listener.get("type", "") for listener in result.get("listeners", [])]

    # ── Frames ──────────────────────────────────────────────────────

    async def attach_to_frame(self, frame_id: str) -> CDPChannel:
        """Open a channel on the out-of-process target that hosts *frame_id*.

        Playwright exposes one CDP session per OOPIF; the matching one is
        found by asking each candidate for its own frame id. Sessions
        opened here are detached by :meth:`detach_frames`.
        """
        if self._page is None:
            raise FrameAttachError("channel has no page to attach frames from", frame_id=frame_id)

        for frame in self._page.frames:
            if frame == self._page.main_frame:
                continue
            try:
                session = await self._page.context.new_cdp_session(frame)
            except Exception:
                # same-process frames have no session of their own
                continue
            try:
                tree = await session.send("Page.getFrameTree")
            except Exception:
                with suppress(Exception):
                    await session.detach()
                continue
            if tree.get("frameTree", {}).get("frame", {}).get("id") != frame_id:
                with suppress(Exception):
                    await session.detach()
                continue

            channel = CDPChannel(session, page=self._page, target_id=frame_id, timeout=self.timeout)
            self._frame_channels.append(channel)
            try:
                await channel.send("Accessibility.enable")
            except ChannelError:
                logger.info("Accessibility.enable failed for frame %s", frame_id)
            return channel

        raise FrameAttachError(f"no target found for frame {frame_id}", frame_id=frame_id)

    async def detach_frames(self) -> None:
        """Detach every frame session opened through this channel (recursively)."""
        channels, self._frame_channels = self._frame_channels, []
        for channel in channels:
            await channel.detach_frames()
            with suppress(Exception):
                await channel._session.detach()

    async def detach(self) -> None:
        await self.detach_frames()
        with suppress(Exception):
            await self._session.detach()
