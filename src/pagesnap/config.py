# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Extraction settings with ``PAGESNAP_*`` environment overrides."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from contextlib import suppress

from .errors import ConfigError

_TRUTHY = ("1", "true", "yes")


@dataclasses.dataclass(frozen=True, slots=True)
class ExtractionSettings:
    """Tunables for one extraction pass.

    Defaults: listener lookups in batches of 20, box lookups in batches
    of 50, four frame attempts with a linear 300ms backoff. Viewport
    intersection is vertical-only unless check_horizontal is set.
    """

    listener_batch_size: int = 20
    box_batch_size: int = 50
    frame_max_attempts: int = 4
    frame_retry_delay: float = 0.3  # seconds, multiplied by the attempt number
    frame_min_nodes: int = 3  # a frame tree with fewer nodes is still loading
    check_horizontal: bool = False
    cdp_timeout: float = 15.0  # seconds per CDP command

    def __post_init__(self) -> None:
        for name in ("listener_batch_size", "box_batch_size", "frame_max_attempts", "frame_min_nodes"):
            if getattr(self, name) < 1:
                raise ConfigError(f"{name} must be >= 1, got {getattr(self, name)}")
        if self.frame_retry_delay < 0:
            raise ConfigError(f"frame_retry_delay must be >= 0, got {self.frame_retry_delay}")
        if self.cdp_timeout <= 0:
            raise ConfigError(f"cdp_timeout must be > 0, got {self.cdp_timeout}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ExtractionSettings:
        """Build settings from defaults overridden by ``PAGESNAP_*`` variables.

        Unparseable numbers are ignored; parseable but out-of-range values
        raise ConfigError.
        """
        env = os.environ if environ is None else environ
        overrides: dict[str, object] = {}

        int_vars = {
            "PAGESNAP_LISTENER_BATCH_SIZE": "listener_batch_size",
            "PAGESNAP_BOX_BATCH_SIZE": "box_batch_size",
            "PAGESNAP_FRAME_MAX_ATTEMPTS": "frame_max_attempts",
            "PAGESNAP_FRAME_MIN_NODES": "frame_min_nodes",
        }
        for var, field in int_vars.items():
            raw = env.get(var, "").strip()
            if raw:
                with suppress(ValueError):
                    overrides[field] = int(raw)

        float_vars = {
            "PAGESNAP_FRAME_RETRY_DELAY": "frame_retry_delay",
            "PAGESNAP_CDP_TIMEOUT": "cdp_timeout",
        }
        for var, field in float_vars.items():
            raw = env.get(var, "").strip()
            if raw:
                with suppress(ValueError):
                    overrides[field] = float(raw)

        env_horizontal = env.get("PAGESNAP_CHECK_HORIZONTAL", "").strip().lower()
        if env_horizontal:
            overrides["check_horizontal"] = env_horizontal in _TRUTHY

        return cls(**overrides)
