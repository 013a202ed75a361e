"""Application bootstrap helpers for the document catalog console client."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import os
import sys
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Mapping, Optional, Sequence, TextIO

from .models.document import SortField, SortOrder, ViewMode
from .realtime.channel import ChannelManager, NotificationHandler
from .realtime.scheduler import LoopScheduler
from .realtime.state import RetryPolicy
from .realtime.transport import WebSocketTransport
from .services.api_client import DocumentApiClient
from .services.document_cache import DocumentCache
from .services.settings import Settings, SettingsStore
from .ui.domain.document_store import DocumentStore
from .ui.commands import read_lines, run_command_loop
from .ui.document_controller import DocumentController
from .ui.events import EventBus
from .ui.view import ConsoleView
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class AppRuntime:
    """Wired collaborators returned by :func:`build_runtime`."""

    settings: Settings
    store: DocumentStore
    view: ConsoleView
    controller: DocumentController
    api: DocumentApiClient


def configure_logging(debug: bool = False, *, force: bool = False) -> None:
    """Configure structured logging for the application."""

    level = logging.DEBUG if debug else logging.INFO
    console_level = logging.DEBUG if debug else logging.WARNING
    log_path = logging_utils.setup_logging(level, console_level=console_level, force=force)
    _LOGGER.debug("Logging configured (level=%s, file=%s)", logging.getLevelName(level), log_path)


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        settings = active_store.load(overrides=overrides)
    except OSError as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        settings = Settings()
    return settings


def build_runtime(settings: Settings, *, stream: TextIO | None = None) -> AppRuntime:
    """Construct the store, view, channel and controller from ``settings``."""

    store = DocumentStore(
        DocumentCache(settings.resolved_cache_path()),
        EventBus(),
        sort_field=SortField(settings.sort_field),
        sort_order=SortOrder(settings.sort_order),
        view_mode=ViewMode(settings.view_mode),
    )
    view = ConsoleView(stream if stream is not None else sys.stdout)
    policy = RetryPolicy(max_attempts=settings.reconnect_attempts, delay=settings.reconnect_delay)

    def channel_factory(handler: NotificationHandler) -> ChannelManager:
        return ChannelManager(
            settings.websocket_url,
            handler,
            scheduler=LoopScheduler(),
            transport=WebSocketTransport(open_timeout=settings.request_timeout),
            policy=policy,
        )

    controller = DocumentController(store, view, channel_factory=channel_factory)
    api = DocumentApiClient(
        settings.api_base_url,
        timeout=settings.request_timeout,
        max_retries=settings.fetch_max_retries,
        retry_min_seconds=settings.retry_min_seconds,
        retry_max_seconds=settings.retry_max_seconds,
    )
    return AppRuntime(settings=settings, store=store, view=view, controller=controller, api=api)


async def run(
    runtime: AppRuntime,
    *,
    offline: bool = False,
    stop: asyncio.Event | None = None,
    commands: AsyncIterator[str] | None = None,
) -> None:
    """Load documents, connect the channel and wait until ``stop`` is set.

    When ``commands`` is given, each line is executed against the console
    view and ``quit`` sets ``stop``.
    """

    stop_event = stop or asyncio.Event()
    command_task: asyncio.Task[None] | None = None
    try:
        if offline:
            _LOGGER.info("Offline mode: showing %d cached document(s)", runtime.store.document_count())
        else:
            await runtime.controller.load_initial_documents(runtime.api)
        if commands is not None:
            command_task = asyncio.create_task(run_command_loop(runtime.view, stop_event, commands))
        await stop_event.wait()
    finally:
        if command_task is not None and not command_task.done():
            command_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await command_task
        runtime.controller.close()
        await runtime.api.aclose()


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point invoked by the `doccatalog` console script."""

    args = _parse_cli_args(argv)

    debug = args.debug or _env_flag("DOCCATALOG_DEBUG", default=False)
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("DOCCATALOG_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    settings = load_settings(resolved_path, store=settings_store, overrides=cli_overrides or None)

    if args.dump_settings:
        _dump_settings(settings, settings_store)
        return

    if args.save_settings:
        try:
            saved = settings_store.save(settings)
        except OSError as exc:
            print(f"Failed to save settings: {exc}", file=sys.stderr)
            raise SystemExit(1) from exc
        print(f"Settings saved to {saved}")
        return

    if settings.debug_logging and not debug:
        configure_logging(True, force=True)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        runtime = build_runtime(settings)
        commands = None if args.no_commands else read_lines(sys.stdin)
        loop.run_until_complete(run(runtime, offline=args.offline, commands=commands))
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown path
        _LOGGER.info("Shutdown requested by user.")
    finally:
        _drain_event_loop(loop)
        loop.close()


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _drain_event_loop(loop: asyncio.AbstractEventLoop) -> None:
    """Cancel outstanding tasks and shutdown async machinery before closing."""

    if loop.is_closed():
        return

    async def _cleanup() -> None:
        current_task = asyncio.current_task(loop=loop)
        tasks = [
            task
            for task in asyncio.all_tasks(loop)
            if not task.done() and task is not current_task
        ]
        if tasks:
            _LOGGER.debug("Canceling %s pending asyncio task(s) before shutdown.", len(tasks))
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        with contextlib.suppress(RuntimeError, NotImplementedError):
            await loop.shutdown_asyncgens()
        with contextlib.suppress(RuntimeError, NotImplementedError):
            await loop.shutdown_default_executor()

    try:
        loop.run_until_complete(_cleanup())
    except RuntimeError as exc:  # pragma: no cover
        _LOGGER.debug("Unable to drain asyncio loop: %s", exc)


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="doccatalog",
        description="Watch the document catalog with realtime updates.",
    )
    parser.add_argument(
        "--settings-path",
        dest="settings_path",
        help="Path to the settings JSON file (defaults to ~/.doccatalog/settings.json)",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        metavar="KEY=VALUE",
        help="Override a settings field for this run; may be repeated",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings as JSON and exit",
    )
    parser.add_argument(
        "--save-settings",
        action="store_true",
        help="Write the effective settings to the settings file and exit",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Skip the initial fetch and the realtime channel; show cached documents",
    )
    parser.add_argument(
        "--no-commands",
        action="store_true",
        help="Watch only; do not read commands from stdin",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser.parse_args(list(argv) if argv is not None else None)


def _coerce_cli_overrides(pairs: Sequence[str]) -> Dict[str, Any]:
    field_types = {field.name: field.type for field in fields(Settings)}
    overrides: Dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"expected KEY=VALUE, got {pair!r}")
        if key not in field_types:
            raise ValueError(f"unknown settings field {key!r}")
        overrides[key] = _coerce_value(raw.strip(), str(field_types[key]))
    return overrides


def _coerce_value(raw: str, annotation: str) -> Any:
    if annotation == "bool":
        return raw.lower() in _TRUE_VALUES
    if annotation == "int":
        return int(raw, 10)
    if annotation == "float":
        return float(raw)
    if "None" in annotation and raw.lower() in {"", "none", "null"}:
        return None
    return raw


def _dump_settings(settings: Settings, store: SettingsStore) -> None:
    payload = asdict(settings)
    payload["settings_path"] = str(store.path)
    payload["resolved_cache_path"] = str(settings.resolved_cache_path())
    log_path = logging_utils.get_log_path()
    payload["log_path"] = str(log_path) if log_path is not None else None
    print(json.dumps(payload, indent=2, sort_keys=True))


if __name__ == "__main__":  # pragma: no cover
    main()
