# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""PageSnap exception hierarchy.

All PageSnap-specific errors inherit from PageSnapError, allowing callers
to catch the base class for any extraction failure or specific subclasses
for targeted handling.
"""

from __future__ import annotations


class PageSnapError(Exception):
    """Base exception for all PageSnap errors."""


class ChannelError(PageSnapError):
    """A CDP command failed, timed out, or returned an unusable payload."""

    def __init__(self, message: str, *, method: str = "") -> None:
        super().__init__(message)
        self.method = method


class FrameAttachError(PageSnapError):
    """No debugging target could be attached for an embedded frame."""

    def __init__(self, message: str, *, frame_id: str = "") -> None:
        super().__init__(message)
        self.frame_id = frame_id


class ExtractionError(PageSnapError):
    """The root accessibility tree or root DOM snapshot could not be fetched."""


class ConfigError(PageSnapError):
    """Invalid extraction settings."""


class BrowserError(PageSnapError):
    """Browser launch or navigation failure (CLI session only)."""
