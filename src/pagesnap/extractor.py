# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Extraction orchestrator.

One pass:
1. capture: DOM snapshot + full AX tree, concurrently
2. decode: metadata, PDF detection, cursor-pointer map
3. geometry: viewport + node boxes (viewport-only passes)
4. listeners: click-family listener lookup
5. synthesis: AX tree → HTML (frames loaded on demand)

Only the two capture requests are essential; every other lookup degrades
to missing data.
"""

from __future__ import annotations

import asyncio
import logging
import re
from html import escape

import lxml.html
from lxml import etree
from playwright.async_api import Page

from . import ElementContent, PageContent
from .channel import CDPChannel
from .config import ExtractionSettings
from .errors import ChannelError, ExtractionError
from .geometry import ViewportFilter, get_viewport, resolve_boxes, resolve_listeners
from .models import AxNode, parse_ax_nodes
from .pipeline_timer import PipelineTimer
from .snapshot import SnapshotAnalysis, analyze_snapshot
from .synthesizer import AxTreeSynthesizer

logger = logging.getLogger(__name__)

_WS_RE = re.compile(r"\s+")
_ROOT_TAG_RE = re.compile(r"\s*<([a-zA-Z][a-zA-Z0-9-]*)")


def listener_candidates(cursor_pointer_nodes: dict[int, str], nodes: list[AxNode]) -> list[int]:
    """DOM nodes to query for event listeners, in first-seen order."""
    ids = list(cursor_pointer_nodes)
    ids.extend(node.backend_dom_node_id for node in nodes if node.backend_dom_node_id)
    return list(dict.fromkeys(ids))


def html_to_text(html: str) -> str:
    """Visible text of an HTML fragment, whitespace collapsed."""
    if not html.strip():
        return ""
    try:
        root = lxml.html.fragment_fromstring(html, create_parent="div")
    except etree.ParserError:
        return ""
    return _WS_RE.sub(" ", " ".join(root.itertext())).strip()


def element_content_from_outer_html(outer_html: str) -> ElementContent:
    """Split an element's outerHTML into inner HTML and text content."""
    if not outer_html.strip():
        return ElementContent()
    root_tag = _ROOT_TAG_RE.match(outer_html)
    if root_tag and root_tag.group(1).lower() in ("html", "body"):
        # fragment parsing strips these wrappers; only a document parse keeps them
        document = lxml.html.document_fromstring(outer_html)
        element = document if root_tag.group(1).lower() == "html" else document.body
    else:
        try:
            element = lxml.html.fragment_fromstring(outer_html)
        except etree.ParserError:
            # more than one top-level node; treat the whole markup as content
            element = lxml.html.fragment_fromstring(outer_html, create_parent="div")

    inner = [escape(element.text, quote=False)] if element.text else []
    inner.extend(etree.tostring(child, method="html", encoding="unicode") for child in element)
    return ElementContent(html="".join(inner), text=str(element.text_content()))


class ContentExtractor:
    """Reads page content through one CDP channel.

    Every pass builds its own state; one extractor can serve consecutive
    passes on the same page.
    """

    def __init__(self, channel: CDPChannel, settings: ExtractionSettings | None = None) -> None:
        self.channel = channel
        self.settings = settings or ExtractionSettings()
        self.last_timings: dict[str, float] = {}

    @classmethod
    async def for_page(cls, page: Page, settings: ExtractionSettings | None = None) -> ContentExtractor:
        settings = settings or ExtractionSettings()
        channel = await CDPChannel.for_page(page, timeout=settings.cdp_timeout)
        return cls(channel, settings)

    async def _capture(self) -> tuple[dict, list[dict]]:
        try:
            snapshot, raw_nodes = await asyncio.gather(
                self.channel.capture_snapshot(),
                self.channel.get_full_ax_tree(),
            )
        except ChannelError as e:
            raise ExtractionError(f"Page capture failed: {e}") from e
        return snapshot, raw_nodes

    async def _viewport_filter(self, nodes: list[AxNode]) -> ViewportFilter:
        try:
            viewport = await get_viewport(self.channel)
        except ChannelError as e:
            raise ExtractionError(f"Viewport metrics unavailable: {e}") from e
        boxes = await resolve_boxes(self.channel, nodes, batch_size=self.settings.box_batch_size)
        return ViewportFilter(viewport=viewport, boxes=boxes, check_horizontal=self.settings.check_horizontal)

    async def get_page_snapshot(self, *, viewport_only: bool = False) -> PageContent:
        """Run one full extraction pass."""
        timer = PipelineTimer()
        try:
            timer.stage("capture")
            snapshot, raw_nodes = await self._capture()

            timer.stage("decode")
            analysis = analyze_snapshot(snapshot)
            nodes = parse_ax_nodes(raw_nodes)

            viewport_filter = None
            if viewport_only:
                timer.stage("geometry")
                viewport_filter = await self._viewport_filter(nodes)

            timer.stage("listeners")
            listeners = await resolve_listeners(
                self.channel,
                listener_candidates(analysis.cursor_pointer_nodes, nodes),
                batch_size=self.settings.listener_batch_size,
            )

            timer.stage("synthesis")
            synthesizer = AxTreeSynthesizer(analysis.cursor_pointer_nodes, listeners, settings=self.settings)
            html = await synthesizer.to_html(nodes, channel=self.channel, viewport_filter=viewport_filter)
        except asyncio.CancelledError:
            # caller-level timeout; report where the pass was abandoned
            logger.warning("Extraction cancelled: %s", timer.timeout_report())
            raise
        finally:
            timer.finalize()
            self.last_timings = timer.elapsed_per_stage()
            await self.channel.detach_frames()

        logger.info(
            "Extracted page: %d AX nodes, %d pointer nodes, %d chars html, viewport_only=%s, %.1fms (%s)",
            len(nodes),
            len(analysis.cursor_pointer_nodes),
            len(html),
            viewport_only,
            timer.total_ms(),
            ", ".join(f"{name}={ms}" for name, ms in self.last_timings.items()),
        )
        return PageContent(html=html, meta=analysis.meta, is_pdf=analysis.is_pdf)

    async def get_html(self, *, viewport_only: bool = False) -> str:
        return (await self.get_page_snapshot(viewport_only=viewport_only)).html

    async def get_text(self, *, viewport_only: bool = False) -> str:
        return html_to_text(await self.get_html(viewport_only=viewport_only))

    async def _analyze(self) -> SnapshotAnalysis:
        try:
            snapshot = await self.channel.capture_snapshot()
        except ChannelError as e:
            raise ExtractionError(f"Snapshot capture failed: {e}") from e
        return analyze_snapshot(snapshot)

    async def get_metadata(self) -> dict[str, str]:
        return (await self._analyze()).meta

    async def is_pdf(self) -> bool:
        return (await self._analyze()).is_pdf

    async def get_element_content(self, selector: str) -> ElementContent:
        """Inner HTML and text of the first element matching *selector*.

        No match yields empty content.
        """
        try:
            outer_html = await self.channel.query_outer_html(selector)
        except ChannelError as e:
            # DOM.querySelector rejects invalid selectors with a protocol error
            logger.debug("Selector %r not resolved: %s", selector, e)
            return ElementContent()
        if not outer_html:
            return ElementContent()
        return element_content_from_outer_html(outer_html)
