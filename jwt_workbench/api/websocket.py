"""WebSocket handler: one editing session per connection."""
import json
import logging

from fastapi import WebSocket, WebSocketDisconnect

from jwt_workbench.database import SqliteHistoryStore
from jwt_workbench.models.session import (
    ChangeExpirationMode,
    EditExpiration,
    EditHeader,
    EditorState,
    EditPayload,
    EditSecret,
    EditToken,
    ToggleClaim,
)
from jwt_workbench.services.expiration import ExpirationMode
from jwt_workbench.services.sync import EditorSession

logger = logging.getLogger(__name__)

_TEXT_EVENTS = {
    "edit_header": EditHeader,
    "edit_payload": EditPayload,
    "edit_secret": EditSecret,
    "edit_token": EditToken,
    "edit_expiration": EditExpiration,
}


def parse_event(msg: dict):
    """Map a client message onto an editor event. Raises ValueError."""
    msg_type = msg.get("type")
    if msg_type in _TEXT_EVENTS:
        text = msg.get("text", "")
        if not isinstance(text, str):
            raise ValueError(f"{msg_type}: text must be a string")
        return _TEXT_EVENTS[msg_type](text)
    if msg_type == "expiration_mode":
        return ChangeExpirationMode(ExpirationMode(msg.get("mode")))
    if msg_type == "toggle_claim":
        return ToggleClaim(field=msg.get("field"), key=msg.get("key"))
    raise ValueError(f"unknown message type {msg_type!r}")


async def websocket_session(websocket: WebSocket):
    await websocket.accept()
    connected = True

    async def send(data: dict):
        if connected:
            await websocket.send_text(json.dumps(data))

    async def push_state(state: EditorState):
        await send({"type": "state", **state.to_dict()})

    pushed_history: list = []

    async def push_history():
        nonlocal pushed_history
        pushed_history = session.history
        await send({"type": "history", "entries": [e.to_dict() for e in pushed_history]})

    async def on_change(state: EditorState):
        await push_state(state)
        if session.history != pushed_history:
            await push_history()

    session = await EditorSession.open(SqliteHistoryStore(), on_change=on_change)
    await push_state(session.state)
    await push_history()

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                msg = json.loads(raw)
                if not isinstance(msg, dict):
                    raise ValueError("message must be a JSON object")
                msg_type = msg.get("type")
                if msg_type == "clear_history":
                    await session.clear_history()
                    await push_history()
                    continue
                if msg_type == "history":
                    await push_history()
                    continue
                if msg_type == "load_history":
                    session.load_history(str(msg.get("id")))
                else:
                    session.submit(parse_event(msg))
            except (ValueError, KeyError) as exc:
                await send({"type": "error", "message": str(exc)})
                continue
            await push_state(session.state)
    except WebSocketDisconnect:
        logger.info("Editing session closed")
    except Exception as exc:
        logger.exception("Unhandled error during editing session: %s", exc)
        try:
            await websocket.send_text(
                json.dumps({"type": "error", "message": str(exc)})
            )
        except Exception:
            pass
    finally:
        connected = False
        await session.drain()
