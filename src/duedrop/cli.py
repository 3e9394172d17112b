# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""DueDrop CLI: detect, watch commands.

Usage:
    python -m duedrop.cli detect FILE --url URL [--format table|json]
    python -m duedrop.cli watch URL [--headed] [--duration SECONDS]
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from pathlib import Path

from . import DetectionResult
from .detector import DetectionState, SubscriptionDetector
from .errors import DueDropError
from .messaging import dashboard_url
from .page_snapshot import HtmlSnapshot
from .settings import Settings, load_settings

logger = logging.getLogger("duedrop.cli")


def _require_cli_deps() -> None:
    """Check that CLI optional dependencies are installed."""
    try:
        from tabulate import tabulate  # noqa: F401
    except ImportError as e:
        print(
            f"Missing CLI dependency: {e.name}\nInstall with: pip install duedrop-detector[cli]",
            file=sys.stderr,
        )
        sys.exit(1)


def _read_html(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    p = Path(path)
    if not p.is_file():
        raise DueDropError(f"HTML file not found: {path}")
    return p.read_text(encoding="utf-8", errors="replace")


def render_table(detection: DetectionResult, settings: Settings) -> str:
    from tabulate import tabulate

    rows = [
        [
            str(m.method),
            f"{m.confidence:.2f}",
            "yes" if m.is_subscription_page else "no",
            m.reason,
        ]
        for m in detection.detection_methods
    ]
    lines = [
        tabulate(rows, headers=["Method", "Confidence", "Flagged", "Reason"], tablefmt="simple"),
        "",
        f"Show extension: {'yes' if detection.should_show_extension else 'no'}",
        f"Overall confidence: {detection.confidence:.2f}",
        f"Reason: {detection.reason}",
    ]
    if detection.detected_service:
        lines.append(f"Service: {detection.detected_service}")
    if detection.should_show_extension:
        lines.append(f"Dashboard: {dashboard_url(settings.dashboard_url, detection.detected_service)}")
    return "\n".join(lines)


def _state_line(state: DetectionState) -> str:
    if state.error is not None:
        return f"[cycle {state.cycle}] error: {state.error}"
    detection = state.detection
    if detection is None:
        return f"[cycle {state.cycle}] no result"
    service = f" service={detection.detected_service}" if detection.detected_service else ""
    return (
        f"[cycle {state.cycle}] show={'yes' if detection.should_show_extension else 'no'} "
        f"confidence={detection.confidence:.2f}{service} reason={detection.reason!r}"
    )


def cmd_detect(args: argparse.Namespace, settings: Settings) -> int:
    """Analyze a saved HTML document."""
    if args.format == "table":
        _require_cli_deps()

    snapshot = HtmlSnapshot.from_html(args.url, _read_html(args.file))
    state = SubscriptionDetector().evaluate_snapshot(snapshot)
    if state.error is not None or state.detection is None:
        raise DueDropError(state.error or "Detection failed")

    if args.format == "json":
        print(json.dumps(state.detection.to_dict(), indent=2, ensure_ascii=False))
    else:
        print(render_table(state.detection, settings))
    return 0 if state.detection.should_show_extension else 2


async def _watch(url: str, *, headed: bool, duration: float | None, settings: Settings) -> None:
    from playwright.async_api import async_playwright

    from .live import snapshot_provider, watch_page
    from .trigger import TriggerController

    async with async_playwright() as pw:
        browser = await pw.chromium.launch(headless=not headed)
        try:
            page = await browser.new_page()
            controller = TriggerController(
                SubscriptionDetector(),
                snapshot_provider(page),
                on_result=lambda state: print(_state_line(state), flush=True),
                debounce_seconds=settings.debounce_seconds,
                enabled=settings.auto_detection,
            )
            unwatch = await watch_page(page, controller)
            try:
                await page.goto(url, wait_until="domcontentloaded")
                controller.mount()
                if duration is None:
                    await asyncio.Event().wait()
                else:
                    await asyncio.sleep(duration)
                await controller.drain()
            finally:
                unwatch()
                controller.close()
        finally:
            await browser.close()


def cmd_watch(args: argparse.Namespace, settings: Settings) -> int:
    """Open a browser on URL and print a line per evaluation cycle."""
    if not settings.auto_detection:
        print("Auto detection is disabled (DUEDROP_AUTO_DETECTION); nothing to watch.", file=sys.stderr)
        return 0
    asyncio.run(_watch(args.url, headed=args.headed, duration=args.duration, settings=settings))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="DueDrop subscription page detector",
        prog="duedrop",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--log-json", action="store_true", help="Emit logs as JSON lines")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_detect = subparsers.add_parser(
        "detect",
        help="Analyze a saved HTML page",
        epilog="exit status: 0 = subscription page, 2 = not a subscription page, 1 = error",
    )
    p_detect.add_argument("file", help="HTML file, or - for stdin")
    p_detect.add_argument("--url", required=True, help="URL the page was served from")
    p_detect.add_argument("--format", choices=("table", "json"), default="table")

    p_watch = subparsers.add_parser("watch", help="Open URL in a browser and re-evaluate as it changes")
    p_watch.add_argument("url")
    p_watch.add_argument("--headed", action="store_true", help="Show the browser window")
    p_watch.add_argument("--duration", type=float, default=None, help="Stop after SECONDS (default: run until Ctrl+C)")
    p_watch.add_argument("--debounce", type=float, default=None, help="Mutation quiescence window in seconds")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = load_settings()
    overrides: dict = {}
    if args.verbose:
        overrides["log_level"] = "DEBUG"
    if args.log_json:
        overrides["log_json"] = True
    if getattr(args, "debounce", None) is not None:
        if args.debounce < 0:
            parser.error("--debounce must be >= 0")
        overrides["debounce_seconds"] = args.debounce
    if overrides:
        settings = dataclasses.replace(settings, **overrides)

    from .logging_config import configure

    configure(json_output=settings.log_json, level=settings.log_level)

    commands = {"detect": cmd_detect, "watch": cmd_watch}
    try:
        code = commands[args.command](args, settings)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)
    except DueDropError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
