# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for ExtractionSettings defaults, validation and env overrides."""

from __future__ import annotations

import dataclasses

import pytest

from pagesnap.config import ExtractionSettings
from pagesnap.errors import ConfigError, PageSnapError


class TestDefaults:
    def test_defaults(self):
        s = ExtractionSettings()
        assert s.listener_batch_size == 20
        assert s.box_batch_size == 50
        assert s.frame_max_attempts == 4
        assert s.frame_retry_delay == pytest.approx(0.3)
        assert s.frame_min_nodes == 3
        assert s.check_horizontal is False
        assert s.cdp_timeout > 0

    def test_frozen(self):
        s = ExtractionSettings()
        with pytest.raises(dataclasses.FrozenInstanceError):
            s.box_batch_size = 10  # type: ignore[misc]


class TestValidation:
    @pytest.mark.parametrize(
        "field",
        ["listener_batch_size", "box_batch_size", "frame_max_attempts", "frame_min_nodes"],
    )
    def test_counts_must_be_positive(self, field):
        with pytest.raises(ConfigError, match=field):
            ExtractionSettings(**{field: 0})

    def test_negative_delay_rejected(self):
        with pytest.raises(ConfigError):
            ExtractionSettings(frame_retry_delay=-0.1)

    def test_zero_delay_allowed(self):
        assert ExtractionSettings(frame_retry_delay=0).frame_retry_delay == 0

    def test_timeout_must_be_positive(self):
        with pytest.raises(ConfigError):
            ExtractionSettings(cdp_timeout=0)

    def test_config_error_is_pagesnap_error(self):
        assert issubclass(ConfigError, PageSnapError)


class TestFromEnv:
    def test_empty_env_gives_defaults(self):
        assert ExtractionSettings.from_env({}) == ExtractionSettings()

    def test_numeric_overrides(self):
        s = ExtractionSettings.from_env(
            {
                "PAGESNAP_LISTENER_BATCH_SIZE": "5",
                "PAGESNAP_BOX_BATCH_SIZE": " 10 ",
                "PAGESNAP_FRAME_MAX_ATTEMPTS": "2",
                "PAGESNAP_FRAME_RETRY_DELAY": "0.05",
                "PAGESNAP_FRAME_MIN_NODES": "1",
                "PAGESNAP_CDP_TIMEOUT": "3.5",
            }
        )
        assert s.listener_batch_size == 5
        assert s.box_batch_size == 10
        assert s.frame_max_attempts == 2
        assert s.frame_retry_delay == pytest.approx(0.05)
        assert s.frame_min_nodes == 1
        assert s.cdp_timeout == pytest.approx(3.5)

    @pytest.mark.parametrize("raw,expected", [("1", True), ("TRUE", True), ("yes", True), ("0", False), ("no", False)])
    def test_check_horizontal(self, raw, expected):
        assert ExtractionSettings.from_env({"PAGESNAP_CHECK_HORIZONTAL": raw}).check_horizontal is expected

    def test_unparseable_values_ignored(self):
        s = ExtractionSettings.from_env({"PAGESNAP_BOX_BATCH_SIZE": "lots", "PAGESNAP_CDP_TIMEOUT": "soon"})
        assert s == ExtractionSettings()

    def test_out_of_range_value_raises(self):
        with pytest.raises(ConfigError):
            ExtractionSettings.from_env({"PAGESNAP_BOX_BATCH_SIZE": "0"})

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("PAGESNAP_LISTENER_BATCH_SIZE", "7")
        assert ExtractionSettings.from_env().listener_batch_size == 7
