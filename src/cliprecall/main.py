#!/usr/bin/env python3

import argparse
import asyncio
import logging
import signal
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

import uvicorn

from cliprecall.api import EventFeed, bridge_surface_factory, create_app
from cliprecall.clipboard import get_clipboard_backend
from cliprecall.config import Settings
from cliprecall.database.preferences import (
    KEYBOARD_SHORTCUT,
    WINDOW_FOLLOWS_CURSOR,
    JsonPreferenceStore,
    PreferenceStore,
)
from cliprecall.exceptions import PersistenceFailure
from cliprecall.services.clipboard_service import ClipboardService
from cliprecall.services.history_service import HistoryStore
from cliprecall.services.hotkey_service import HotkeyService, KeyboardRegistrar
from cliprecall.services.scheduler import AsyncioScheduler
from cliprecall.services.session_service import SessionController
from cliprecall.services.surface import LoggingSurface
from cliprecall.utils.screen import TkScreen

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


def create_preferences(settings: Settings) -> PreferenceStore:
    if settings.store == "redis":
        store = settings.redis.create_store()
        try:
            store.ping()
        except PersistenceFailure as e:
            logger.warning("Redis unavailable, continuing with %s: %s", settings.preferences_path, e)
        else:
            logger.info("Preferences stored in redis hash %s", settings.redis.key)
            return store

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Preferences stored in %s", settings.preferences_path)
    return JsonPreferenceStore(settings.preferences_path)


class ClipRecallApp:

    def __init__(self, settings: Settings):
        self.settings = settings
        self.preferences: Optional[PreferenceStore] = None
        self.store: Optional[HistoryStore] = None
        self.clipboard_service: Optional[ClipboardService] = None
        self.hotkey_service: Optional[HotkeyService] = None
        self.controller: Optional[SessionController] = None
        self.feed = EventFeed()
        self.server: Optional[uvicorn.Server] = None
        self._stopped: Optional[asyncio.Event] = None
        self.running = False

    def build(self, loop: asyncio.AbstractEventLoop) -> SessionController:
        scheduler = AsyncioScheduler(loop)
        self.preferences = create_preferences(self.settings)

        self.store = HistoryStore(self.preferences)
        self.store.load()
        logger.info("Loaded %d history items (limit %d)", len(self.store), self.store.capacity)

        backend = get_clipboard_backend()
        surface_factory = bridge_surface_factory(self.feed) if self.settings.api_enabled else LoggingSurface
        self.controller = SessionController(
            store=self.store,
            backend=backend,
            scheduler=scheduler,
            preferences=self.preferences,
            surface_factory=surface_factory,
            screen=TkScreen(),
        )

        self.clipboard_service = ClipboardService(
            backend,
            scheduler,
            on_capture=self.controller.on_capture,
            poll_interval=self.settings.poll_interval,
        )
        self.hotkey_service = HotkeyService(
            KeyboardRegistrar(),
            scheduler,
            on_trigger=self.controller.open,
            shortcut=self._stored_shortcut(),
            on_shortcut_changed=self._save_shortcut,
        )
        self.controller.detector = self.clipboard_service
        self.controller.hotkeys = self.hotkey_service
        return self.controller

    def _stored_shortcut(self) -> Optional[str]:
        try:
            return self.preferences.get(KEYBOARD_SHORTCUT)
        except PersistenceFailure as e:
            logger.warning("Could not read saved shortcut, using the default: %s", e)
            return None

    def _save_shortcut(self, shortcut: str) -> None:
        try:
            self.preferences.set(KEYBOARD_SHORTCUT, shortcut)
        except PersistenceFailure as e:
            logger.error("Could not save shortcut: %s", e)

    def start(self) -> None:
        if self.running:
            return

        try:
            self.preferences.setdefault(WINDOW_FOLLOWS_CURSOR, True)
        except PersistenceFailure as e:
            logger.warning("Could not initialise preferences: %s", e)

        self.clipboard_service.start()
        self.hotkey_service.start()
        self.running = True

        print("\n" + "=" * 60)
        print("ClipRecall Started")
        print("=" * 60)
        if self.controller.show_startup_message():
            print(f"Shortcut:     {self.hotkey_service.shortcut}")
            print(f"History:      {len(self.store)}/{self.store.capacity} items")
            if self.settings.api_enabled:
                print(f"Bridge:       http://{self.settings.api_host}:{self.settings.api_port}")
        print("=" * 60 + "\n")

    def stop(self) -> None:
        if not self.running:
            return
        self.running = False
        logger.info("Stopping ClipRecall...")

        if self.hotkey_service:
            self.hotkey_service.stop()
        if self.clipboard_service:
            self.clipboard_service.stop()
        if self.controller:
            self.controller.close()
        if self.preferences:
            self.preferences.close()
        if self.server is not None:
            self.server.should_exit = True
        if self._stopped is not None:
            self._stopped.set()

        print("ClipRecall stopped")

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        self._stopped = asyncio.Event()
        self.build(loop)
        self.start()

        try:
            if self.settings.api_enabled:
                config = uvicorn.Config(
                    create_app(self.controller, self.feed),
                    host=self.settings.api_host,
                    port=self.settings.api_port,
                    log_level="warning",
                )
                self.server = uvicorn.Server(config)
                await self.server.serve()
            else:
                await self._stopped.wait()
        finally:
            self.stop()


def parse_args():
    parser = argparse.ArgumentParser(
        description="ClipRecall - Clipboard history with global-shortcut recall"
    )

    parser.add_argument(
        "-i", "--poll-interval",
        type=float,
        default=None,
        help="Clipboard polling interval in seconds (default: 0.5)"
    )

    parser.add_argument(
        "-s", "--store",
        choices=["json", "redis"],
        default=None,
        help="Where preferences and history are kept (default: json)"
    )

    parser.add_argument(
        "-d", "--data-dir",
        type=Path,
        default=None,
        help="Directory for the JSON preference file"
    )

    parser.add_argument(
        "-p", "--api-port",
        type=int,
        default=None,
        help="Port of the HTTP bridge (default: 9123)"
    )

    parser.add_argument(
        "--no-api",
        action="store_true",
        help="Do not serve the HTTP bridge; log the history instead"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose debug logging"
    )

    return parser.parse_args()


def settings_from_args(args) -> Settings:
    settings = Settings.from_env()
    overrides = {}
    if args.poll_interval is not None:
        overrides["poll_interval"] = args.poll_interval
    if args.store is not None:
        overrides["store"] = args.store
    if args.data_dir is not None:
        overrides["data_dir"] = args.data_dir.expanduser()
    if args.api_port is not None:
        overrides["api_port"] = args.api_port
    if args.no_api:
        overrides["api_enabled"] = False
    return replace(settings, **overrides)


def main():
    args = parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        settings = settings_from_args(args)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(2)

    app = ClipRecallApp(settings)

    def signal_handler(signum, frame):
        raise KeyboardInterrupt

    if not settings.api_enabled:
        # uvicorn installs its own handlers while serving
        signal.signal(signal.SIGTERM, signal_handler)

    try:
        asyncio.run(app.run())
    except KeyboardInterrupt:
        print("\nStopping...")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
