"""HTTP bridge between the engine and whatever UI draws the history.

Handlers are ``async`` so they run on the engine's event loop and never race
the poller or the session timers.
"""

import json
import logging
from typing import Any, Optional, Type, TypeVar

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from cliprecall.api.surface import BridgeSurface, EventFeed
from cliprecall.exceptions import HotkeyRegistrationFailure
from cliprecall.schema import HistoryLimitUpdate, OpenRequest, SettingsUpdate
from cliprecall.services.session_service import SessionController

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def _read_model(request: Request, model: Type[ModelT]) -> ModelT:
    body = await request.body()
    payload: Any = json.loads(body) if body else {}
    return model.model_validate(payload)


def create_app(controller: SessionController, feed: Optional[EventFeed] = None) -> FastAPI:
    feed = feed if feed is not None else EventFeed()
    app = FastAPI(title="ClipRecall")
    app.state.controller = controller
    app.state.feed = feed

    def session_state() -> dict:
        surface = controller.surface
        state = {"state": controller.state.value}
        if isinstance(surface, BridgeSurface):
            rect = surface.rect
            state["rect"] = {"x": rect.x, "y": rect.y, "width": rect.width, "height": rect.height}
            state["focused"] = surface.has_focus()
        return state

    @app.get("/")
    async def root():
        return "running"

    # history

    @app.get("/history")
    async def get_history():
        return {"history": controller.get_history()}

    @app.post("/history/{item_id}/select")
    async def select_item(item_id: str):
        if not controller.select_item(item_id):
            return _error(404, f"no history item {item_id!r}")
        return {"ok": True}

    @app.delete("/history")
    async def clear_history():
        controller.clear_history()
        return {"ok": True}

    # settings

    @app.put("/settings/history-limit")
    async def update_history_limit(request: Request):
        try:
            update = await _read_model(request, HistoryLimitUpdate)
        except ValidationError as e:
            return _error(422, str(e))
        except ValueError as e:
            return _error(422, f"invalid JSON body: {e}")
        controller.update_history_limit(update.limit)
        return {"ok": True, "historyLimit": controller.history_limit()}

    @app.get("/settings")
    async def get_settings():
        return controller.settings()

    @app.put("/settings")
    async def update_settings(request: Request):
        try:
            update = await _read_model(request, SettingsUpdate)
        except ValidationError as e:
            return _error(422, str(e))
        except ValueError as e:
            return _error(422, f"invalid JSON body: {e}")

        if update.notificationsEnabled is not None:
            controller.set_notifications_enabled(update.notificationsEnabled)
        if update.windowFollowsCursor is not None:
            controller.set_window_follows_cursor(update.windowFollowsCursor)
        if update.showStartupMessage is not None:
            controller.set_show_startup_message(update.showStartupMessage)
        if update.keyboardShortcut is not None:
            try:
                changed = controller.set_keyboard_shortcut(update.keyboardShortcut)
            except ValueError as e:
                return _error(422, str(e))
            except HotkeyRegistrationFailure as e:
                logger.warning("Shortcut change rejected: %s", e)
                return _error(409, str(e))
            if not changed:
                return _error(409, "global shortcuts are not available")
        return controller.settings()

    @app.post("/settings/reset")
    async def reset_settings():
        controller.reset()
        return controller.settings()

    # session

    @app.post("/session/open")
    async def open_session(request: Request):
        try:
            options = await _read_model(request, OpenRequest)
        except ValidationError as e:
            return _error(422, str(e))
        except ValueError as e:
            return _error(422, f"invalid JSON body: {e}")
        opened = controller.open(force_top_right=options.forceTopRight)
        return {"opened": opened, **session_state()}

    @app.post("/session/ready")
    async def session_ready():
        controller.surface_ready()
        return session_state()

    @app.post("/session/focus")
    async def session_focus():
        surface = controller.surface
        if isinstance(surface, BridgeSurface):
            surface.focused = True
        return session_state()

    @app.post("/session/blur")
    async def session_blur():
        surface = controller.surface
        if isinstance(surface, BridgeSurface):
            surface.focused = False
        controller.focus_lost()
        return session_state()

    @app.post("/session/close")
    async def close_session():
        controller.close()
        return session_state()

    @app.get("/session")
    async def get_session():
        return session_state()

    @app.get("/events")
    async def get_events(after: int = 0):
        return {"events": feed.since(after), "last": feed.last_seq}

    return app
