# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Runtime configuration from DUEDROP_* environment variables."""

from __future__ import annotations

import dataclasses
import logging
import os
from collections.abc import Mapping
from contextlib import suppress

from .messaging import DEFAULT_DASHBOARD_URL
from .trigger import DEFAULT_DEBOUNCE_SECONDS

logger = logging.getLogger("duedrop.settings")

_TRUTHY = ("1", "true", "yes")
_FALSY = ("0", "false", "no")


@dataclasses.dataclass(frozen=True, slots=True, kw_only=True)
class Settings:
    auto_detection: bool = True
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    dashboard_url: str = DEFAULT_DASHBOARD_URL
    log_level: str = "INFO"
    log_json: bool = False


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Read settings; unparseable values fall back to defaults."""
    env = os.environ if environ is None else environ
    values: dict = {}

    auto = env.get("DUEDROP_AUTO_DETECTION", "").strip().lower()
    if auto in _TRUTHY:
        values["auto_detection"] = True
    elif auto in _FALSY:
        values["auto_detection"] = False

    debounce = env.get("DUEDROP_DEBOUNCE_SECONDS", "").strip()
    if debounce:
        with suppress(ValueError):
            parsed = float(debounce)
            if parsed >= 0:
                values["debounce_seconds"] = parsed
        if "debounce_seconds" not in values:
            logger.warning("ignoring DUEDROP_DEBOUNCE_SECONDS=%r", debounce)

    dashboard = env.get("DUEDROP_DASHBOARD_URL", "").strip()
    if dashboard:
        values["dashboard_url"] = dashboard

    level = env.get("DUEDROP_LOG_LEVEL", "").strip().upper()
    if level:
        values["log_level"] = level

    values["log_json"] = env.get("DUEDROP_LOG_JSON", "").strip().lower() in _TRUTHY

    return Settings(**values)
