# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""PageSnap: semantic HTML reconstructed from the accessibility tree and DOM snapshot.

A page is read through the Chrome DevTools Protocol only; no script is
injected into the page. One extraction pass produces:
- html: pruned semantic HTML with ``node="<id>"`` handles on interactive elements
- meta: ``og:*`` and ``description`` metadata from ``<head>``
- is_pdf: whether the tab is Chrome's built-in PDF viewer
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class PageContent:
    """Result of one page extraction pass."""

    html: str
    meta: dict[str, str] = field(default_factory=dict)  # og:* suffix or "description" -> content
    is_pdf: bool = False

    def to_dict(self) -> dict:
        return {"html": self.html, "meta": dict(self.meta), "isPdf": self.is_pdf}


@dataclass
class ElementContent:
    """Inner HTML and text content of a single element subtree."""

    html: str = ""
    text: str = ""

    def to_dict(self) -> dict:
        return {"html": self.html, "text": self.text}
