import pytest
from fastapi.testclient import TestClient

from cliprecall.api import EventFeed, bridge_surface_factory, create_app
from cliprecall.models.snapshot import ContentSnapshot, SnapshotKind
from cliprecall.services.hotkey_service import HotkeyService, default_shortcut
from cliprecall.services.session_service import SessionController

from conftest import FakeRegistrar


@pytest.fixture
def feed():
    return EventFeed()


@pytest.fixture
def bridge_controller(store, clipboard, scheduler, preferences, screen, feed):
    return SessionController(
        store=store,
        backend=clipboard,
        scheduler=scheduler,
        preferences=preferences,
        surface_factory=bridge_surface_factory(feed),
        screen=screen,
    )


@pytest.fixture
def client(bridge_controller, feed):
    return TestClient(create_app(bridge_controller, feed))


def add_text(store, value):
    return store.append(ContentSnapshot(kind=SnapshotKind.TEXT, payload=value, preview=value))


def event_types(client, after=0):
    return [event["type"] for event in client.get("/events", params={"after": after}).json()["events"]]


def test_root(client):
    assert client.get("/").json() == "running"


def test_history_listing(client, store):
    add_text(store, "one")
    add_text(store, "two")
    history = client.get("/history").json()["history"]
    assert [item["text"] for item in history] == ["two", "one"]


def test_session_lifecycle(client, bridge_controller):
    response = client.post("/session/open")
    assert response.json()["opened"] is True
    assert response.json()["state"] == "initializing"
    assert response.json()["rect"] == {"x": 810, "y": 200, "width": 400, "height": 500}

    assert client.post("/session/open").json()["opened"] is False

    assert client.post("/session/ready").json()["state"] == "active"
    assert event_types(client) == ["show", "history-updated"]

    assert client.post("/session/close").json() == {"state": "idle"}
    assert event_types(client)[-1] == "close"


def test_open_top_right(client):
    response = client.post("/session/open", json={"forceTopRight": True})
    assert response.json()["rect"]["x"] == 1500


def test_open_with_bad_body(client):
    assert client.post("/session/open", json={"forceTopRight": "sideways"}).status_code == 422


def test_select_item(client, store, clipboard):
    item = add_text(store, "pick me")
    add_text(store, "newer")
    client.post("/session/open")
    client.post("/session/ready")

    assert client.post(f"/history/{item.id}/select").json() == {"ok": True}
    assert clipboard.writes == [("text", "pick me")]
    events = client.get("/events").json()["events"]
    notification = [e for e in events if e["type"] == "show-notification"][-1]
    assert notification["payload"] == {
        "title": "Text Copied",
        "message": '"pick me" is ready to paste',
        "type": "success",
    }


def test_select_unknown_item(client):
    assert client.post("/history/nope/select").status_code == 404


def test_clear_history(client, store):
    add_text(store, "gone")
    assert client.delete("/history").json() == {"ok": True}
    assert client.get("/history").json() == {"history": []}


def test_history_limit(client, store, preferences):
    for value in "abc":
        add_text(store, value)
    response = client.put("/settings/history-limit", json={"limit": 2})
    assert response.json() == {"ok": True, "historyLimit": 2}
    assert len(store) == 2


@pytest.mark.parametrize("body", [{"limit": 0}, {"limit": "ten"}, {}])
def test_history_limit_validation(client, body):
    assert client.put("/settings/history-limit", json=body).status_code == 422


def test_history_limit_malformed_json(client):
    response = client.put("/settings/history-limit", content=b"{oops",
                          headers={"content-type": "application/json"})
    assert response.status_code == 422


def test_settings_round_trip(client):
    response = client.put("/settings", json={"notificationsEnabled": False, "windowFollowsCursor": False})
    assert response.status_code == 200
    settings = client.get("/settings").json()
    assert settings["notificationsEnabled"] is False
    assert settings["windowFollowsCursor"] is False
    assert settings["historyLimit"] == 50


def test_shortcut_without_hotkeys_is_conflict(client):
    assert client.put("/settings", json={"keyboardShortcut": "Ctrl+Shift+V"}).status_code == 409


def test_shortcut_change(client, bridge_controller, scheduler):
    registrar = FakeRegistrar()
    bridge_controller.hotkeys = HotkeyService(registrar, scheduler, on_trigger=bridge_controller.open,
                                              shortcut="Ctrl+Alt+V")
    bridge_controller.hotkeys.start()

    response = client.put("/settings", json={"keyboardShortcut": "Ctrl+Shift+V"})
    assert response.json()["keyboardShortcut"] == "Ctrl+Shift+V"

    registrar.refuse.add("Ctrl+Shift+X")
    response = client.put("/settings", json={"keyboardShortcut": "Ctrl+Shift+X"})
    assert response.status_code == 409
    assert client.get("/settings").json()["keyboardShortcut"] == "Ctrl+Shift+V"


def test_blur_and_focus(client, bridge_controller, scheduler):
    client.post("/session/open")
    client.post("/session/ready")
    scheduler.advance(0.6)

    client.post("/session/blur")
    client.post("/session/focus")
    scheduler.advance(0.3)
    assert client.get("/session").json()["state"] == "active"

    client.post("/session/blur")
    scheduler.advance(0.3)
    assert client.get("/session").json() == {"state": "idle"}


def test_events_after_sequence(client):
    client.post("/session/open")
    client.post("/session/ready")
    last = client.get("/events").json()["last"]
    client.post("/session/close")
    assert event_types(client, after=last) == ["close"]


def test_reset_route(client, bridge_controller, scheduler, store):
    registrar = FakeRegistrar()
    bridge_controller.hotkeys = HotkeyService(registrar, scheduler, on_trigger=bridge_controller.open,
                                              shortcut="Ctrl+Shift+H")
    bridge_controller.hotkeys.start()
    store.append(ContentSnapshot(kind=SnapshotKind.TEXT, payload="a", preview="a"))
    client.put("/settings/history-limit", json={"limit": 5})
    client.put("/settings", json={"notificationsEnabled": False})

    response = client.post("/settings/reset")
    assert response.status_code == 200
    body = response.json()
    assert body["historyLimit"] == 50
    assert body["notificationsEnabled"] is True
    assert body["keyboardShortcut"] == default_shortcut()
    assert client.get("/history").json() == {"history": []}
