# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for DOM snapshot decoding: node records, PDF detection, metadata, pointer propagation."""

from __future__ import annotations

import logging

from pagesnap.models import DocumentSnapshot
from pagesnap.snapshot import (
    CAPTURE_PARAMS,
    TEXT_NODE,
    analyze_snapshot,
    decode_document,
)
from tests._cdp_fakes import SnapshotBuilder, pdf_viewer_snapshot

# ── Helpers ──────────────────────────────────────────────────────────


def _page_with_head(*metas: dict[str, str]) -> SnapshotBuilder:
    b = SnapshotBuilder()
    html = b.add("HTML")
    head = b.add("HEAD", html)
    for attrs in metas:
        b.add("META", head, attrs=attrs)
    b.add("BODY", html)
    return b


# ── Decoding ─────────────────────────────────────────────────────────


class TestDecodeDocument:
    def test_layout_index_valid_or_minus_one(self):
        b = SnapshotBuilder()
        html = b.add("HTML")
        b.add("HEAD", html, layout=False)
        body = b.add("BODY", html)
        b.add("#text", body, text="hello")
        raw = b.build()
        doc = DocumentSnapshot.model_validate(raw["documents"][0])

        decoded = decode_document(doc)
        layout_count = len(doc.layout.node_index)
        for record in decoded.nodes.values():
            assert record.layout_index == -1 or 0 <= record.layout_index < layout_count
            if record.node_type == TEXT_NODE:
                assert record.layout_index != -1
        head_record = decoded.nodes[2]
        assert head_record.layout_index == -1

    def test_text_without_layout_is_dropped(self):
        b = SnapshotBuilder()
        html = b.add("HTML")
        body = b.add("BODY", html)
        shown = b.add("#text", body, text="shown")
        hidden = b.add("#text", body, text="hidden", layout=False)
        doc = DocumentSnapshot.model_validate(b.build()["documents"][0])

        decoded = decode_document(doc)
        assert shown in decoded.nodes
        assert hidden not in decoded.nodes
        assert decoded.children[body] == [shown]

    def test_document_node_not_retained(self):
        b = SnapshotBuilder()
        b.add("HTML")
        decoded = decode_document(DocumentSnapshot.model_validate(b.build()["documents"][0]))
        assert 0 not in decoded.nodes
        assert decoded.children[0] == [1]

    def test_capture_params_request_cursor_only(self):
        assert CAPTURE_PARAMS["computedStyles"] == ["cursor"]
        assert CAPTURE_PARAMS["includePaintOrder"] is False
        assert CAPTURE_PARAMS["includeDOMRects"] is False
        assert CAPTURE_PARAMS["includeBlendedBackgroundColors"] is False


# ── PDF detection ────────────────────────────────────────────────────


class TestPdfDetection:
    def test_single_embed_pdf(self):
        assert analyze_snapshot(pdf_viewer_snapshot()).is_pdf is True

    def test_chrome_pdf_marker(self):
        assert analyze_snapshot(pdf_viewer_snapshot(mime="application/x-google-chrome-pdf")).is_pdf is True

    def test_extra_sibling_is_not_pdf(self):
        assert analyze_snapshot(pdf_viewer_snapshot(extra_body_child="P")).is_pdf is False

    def test_other_embed_type_is_not_pdf(self):
        assert analyze_snapshot(pdf_viewer_snapshot(mime="video/mp4")).is_pdf is False

    def test_body_without_head(self):
        b = SnapshotBuilder()
        html = b.add("HTML")
        body = b.add("BODY", html)
        b.add("EMBED", body, attrs={"type": "application/x-pdf"})
        assert analyze_snapshot(b.build()).is_pdf is True

    def test_ordinary_page(self):
        b = _page_with_head()
        assert analyze_snapshot(b.build()).is_pdf is False

    def test_no_documents_falls_back_to_mime_type(self):
        assert analyze_snapshot({"documents": [], "strings": []}, mime_type="application/pdf").is_pdf is True
        assert analyze_snapshot({"documents": [], "strings": []}, mime_type="text/html").is_pdf is False
        assert analyze_snapshot({}).is_pdf is False


# ── Metadata ─────────────────────────────────────────────────────────


class TestMetadata:
    def test_og_and_description(self):
        b = _page_with_head(
            {"property": "og:title", "content": "Title"},
            {"name": "description", "content": "Desc"},
            {"name": "viewport", "content": "width=device-width"},
        )
        assert analyze_snapshot(b.build()).meta == {"title": "Title", "description": "Desc"}

    def test_last_write_wins(self):
        b = _page_with_head(
            {"name": "description", "content": "first"},
            {"property": "og:description", "content": "second"},
        )
        assert analyze_snapshot(b.build()).meta == {"description": "second"}

    def test_empty_content_skipped(self):
        b = _page_with_head({"property": "og:image", "content": ""})
        assert analyze_snapshot(b.build()).meta == {}

    def test_attribute_names_case_insensitive(self):
        b = _page_with_head({"PROPERTY": "OG:Site_Name", "CONTENT": "Shop"})
        assert analyze_snapshot(b.build()).meta == {"site_name": "Shop"}

    def test_no_head(self):
        b = SnapshotBuilder()
        html = b.add("HTML")
        b.add("BODY", html)
        assert analyze_snapshot(b.build()).meta == {}


# ── Cursor pointer propagation ───────────────────────────────────────


class TestCursorPointer:
    def test_transitive_propagation(self):
        b = SnapshotBuilder()
        html = b.add("HTML")
        body = b.add("BODY", html)
        a = b.add("BUTTON", body, cursor="pointer")
        child = b.add("SPAN", a)
        grandchild = b.add("I", child, layout=False)
        b.add("P", body)

        pointer = analyze_snapshot(b.build()).cursor_pointer_nodes
        assert pointer == {
            b.backend(a): "button",
            b.backend(child): "span",
            b.backend(grandchild): "i",
        }

    def test_parent_cycle_terminates(self):
        b = SnapshotBuilder()
        first = b.add("DIV", 2, cursor="pointer")
        second = b.add("SPAN", first)
        raw = b.build()
        assert raw["documents"][0]["nodes"]["parentIndex"][first] == 2

        pointer = analyze_snapshot(raw).cursor_pointer_nodes
        assert pointer == {b.backend(first): "div", b.backend(second): "span"}

    def test_only_first_style_counts(self):
        b = SnapshotBuilder()
        html = b.add("HTML")
        b.add("DIV", html, cursor="default")
        assert analyze_snapshot(b.build()).cursor_pointer_nodes == {}

    def test_secondary_documents_scanned(self):
        main = SnapshotBuilder()
        main.add("HTML")
        raw = main.build()
        frame = SnapshotBuilder()
        frame.strings = raw["strings"]
        frame._interned = {s: i for i, s in enumerate(frame.strings)}
        frame_html = frame.add("HTML")
        link = frame.add("A", frame_html, cursor="pointer")
        frame.backend_node_id[link] = 500

        raw = {"documents": [raw["documents"][0], frame.document()], "strings": frame.strings}
        assert analyze_snapshot(raw).cursor_pointer_nodes == {500: "a"}


# ── Malformed input ──────────────────────────────────────────────────


class TestMalformed:
    def test_malformed_main_document_yields_empty_analysis(self, caplog):
        raw = {
            "documents": [{"nodes": {"parentIndex": [-1]}, "layout": {"nodeIndex": [9], "styles": [[0]]}}],
            "strings": ["pointer"],
        }
        with caplog.at_level(logging.WARNING, logger="pagesnap.snapshot"):
            analysis = analyze_snapshot(raw)
        assert analysis.meta == {}
        assert analysis.is_pdf is False
        assert analysis.cursor_pointer_nodes == {}
        assert "malformed" in caplog.text

    def test_malformed_secondary_document_skipped(self):
        b = SnapshotBuilder()
        html = b.add("HTML")
        btn = b.add("BUTTON", html, cursor="pointer")
        raw = b.build()
        raw["documents"].append({"nodes": {"parentIndex": [-1]}, "layout": {"nodeIndex": [4], "styles": [[]]}})
        assert analyze_snapshot(raw).cursor_pointer_nodes == {b.backend(btn): "button"}

    def test_non_string_pool_entry_keeps_indices(self):
        raw = _page_with_head({"property": "og:title", "content": "Shop"}).build()
        assert raw["strings"][0] == "#document"
        raw["strings"][0] = None
        assert analyze_snapshot(raw).meta == {"title": "Shop"}
