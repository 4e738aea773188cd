# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import pagesnap  # noqa: F401
except ImportError:
    raise ImportError("pagesnap is not installed. Run: pip install -e '.[dev]'") from None

import pytest


@pytest.fixture(autouse=True)
def _block_real_browser(request, monkeypatch):
    """Safety net: prevent real browser launches in unit tests.

    Tests that drive ``BrowserSession`` should patch
    ``pagesnap.browser_session.async_playwright`` with a fake; that patch
    takes priority over this fixture. Tests that forget will get a clear
    error instead of silently trying to launch Chromium.

    Opt out with::

        @pytest.mark.allow_real_browser
    """
    if "allow_real_browser" in request.keywords:
        return

    def _no_real_playwright():
        raise RuntimeError(
            "Test tried to launch a real browser. Patch 'pagesnap.browser_session.async_playwright' in your test."
        )

    monkeypatch.setattr("pagesnap.browser_session.async_playwright", _no_real_playwright)


@pytest.fixture(autouse=True)
def _clean_pagesnap_env(monkeypatch):
    """Keep developer PAGESNAP_* overrides out of the tests."""
    import os

    for var in [v for v in os.environ if v.startswith("PAGESNAP_")]:
        monkeypatch.delenv(var)
