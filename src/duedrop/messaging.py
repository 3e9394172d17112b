# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Cross-context hand-off: the indicator asks the popup to open.

The message carries only the detected service name.  The receiving side
keeps it until the popup consumes it once, then forgets it, and the popup
links to the dashboard with the service as a query parameter.
"""

from __future__ import annotations

import logging
from typing import Any, Literal, Protocol
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from . import DetectionResult

logger = logging.getLogger("duedrop.messaging")

DEFAULT_DASHBOARD_URL = "http://localhost:3000/dashboard"


class OpenPopupMessage(BaseModel):
    """Message sent from a content context to the background context."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    action: Literal["openPopup"] = "openPopup"
    detected_service: str | None = Field(
        default=None,
        alias="detectedService",
        max_length=200,
        description="Display name from the URL analyzer, if any",
    )

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def build_open_popup_message(result: DetectionResult) -> OpenPopupMessage:
    return OpenPopupMessage(detected_service=result.detected_service)


def parse_message(payload: Any) -> OpenPopupMessage | None:
    """Validate an incoming payload. Unknown or malformed messages yield None."""
    try:
        return OpenPopupMessage.model_validate(payload)
    except ValidationError as e:
        logger.debug("ignoring message: %s", e.errors(include_url=False))
        return None


def dashboard_url(base: str = DEFAULT_DASHBOARD_URL, service: str | None = None) -> str:
    if not service:
        return base
    return f"{base}?service={quote(service, safe='')}"


class MessageChannel(Protocol):
    def send(self, message: OpenPopupMessage) -> None: ...


def request_popup(result: DetectionResult, channel: MessageChannel) -> OpenPopupMessage | None:
    """Indicator click: ask the background side to open the popup.

    Nothing is sent for a result that was not shown.
    """
    if not result.should_show_extension:
        return None
    message = build_open_popup_message(result)
    channel.send(message)
    logger.debug("open popup requested service=%s", message.detected_service)
    return message


class InMemoryChannel:
    """Background-side receiver: remembers the last service until taken."""

    def __init__(self) -> None:
        self.open_requests = 0
        self._pending_service: str | None = None

    def send(self, message: OpenPopupMessage) -> None:
        if message.detected_service:
            self._pending_service = message.detected_service
        self.open_requests += 1

    def receive(self, payload: Any) -> bool:
        """Raw-payload entry point. Returns True if the payload was accepted."""
        message = parse_message(payload)
        if message is None:
            return False
        self.send(message)
        return True

    def take_detected_service(self) -> str | None:
        """Read-once: the popup consumes the pending service name."""
        service, self._pending_service = self._pending_service, None
        return service
