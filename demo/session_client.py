"""
Scripted editing session: changes the payload, then the secret, and prints
each token the server signs along with its verification state.
"""
import asyncio
import json
import os
import sys

import websockets

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
from dotenv import load_dotenv
load_dotenv()

WS_URL = os.getenv("WS_URL", "ws://localhost:8000/ws/session")
SECRET = os.getenv("DEMO_SECRET", "demo-secret-for-the-workbench")

_EDITS = [
    {"type": "edit_payload", "text": json.dumps({"sub": "demo-user", "role": "admin", "exp": 2000000000})},
    {"type": "edit_secret", "text": SECRET},
    {"type": "expiration_mode", "mode": "gmt"},
    {"type": "edit_expiration", "text": "2030-01-01T00:00"},
]


async def _settle(ws, seconds: float = 0.3) -> dict | None:
    """Read frames until the server goes quiet; return the last state."""
    last = None
    while True:
        try:
            raw = await asyncio.wait_for(ws.recv(), timeout=seconds)
        except asyncio.TimeoutError:
            return last
        msg = json.loads(raw)
        if msg.get("type") == "state":
            last = msg
        elif msg.get("type") == "error":
            print(f"[demo] ERROR: {msg.get('message')}")


async def run():
    print(f"[demo] Connecting to {WS_URL}")
    async with websockets.connect(WS_URL) as ws:
        state = await _settle(ws)
        print(f"[demo] initial token: {state['token']}  ({state['verified']})")
        for edit in _EDITS:
            await ws.send(json.dumps(edit))
            state = await _settle(ws)
            print(f"[demo] {edit['type']:<16} exp={state['exp_display']:<18} {state['verified']}")
            print(f"       {state['token']}")


if __name__ == "__main__":
    asyncio.run(run())
