# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""DueDrop exception hierarchy.

All DueDrop-specific errors inherit from DueDropError.  Analyzer-level
failures are contained inside an evaluation cycle; orchestration-level
failures end the cycle and are reported to the caller as text.
"""

from __future__ import annotations


class DueDropError(Exception):
    """Base exception for all DueDrop errors."""


class AnalysisFailure(DueDropError):
    """A single analyzer raised or returned malformed data."""

    def __init__(self, message: str, *, method: str = "") -> None:
        super().__init__(message)
        self.method = method


class OrchestrationFailure(DueDropError):
    """The evaluation cycle itself could not run."""


class SnapshotError(OrchestrationFailure):
    """No usable document: page content missing or unparseable."""
