"""Manual smoke check against a running server (``chatroom-server``)."""
import asyncio
import json

import websockets


async def main():
    async with websockets.connect("ws://localhost:4000/ws/chat") as ws:
        await ws.send(json.dumps({"type": "user:join", "data": "smoke-test"}))
        joined = await ws.recv()
        print(f"Joined: {joined}")

        await ws.send(json.dumps({"type": "message:send", "data": {"text": "Hello from Python!"}}))

        # The sender receives its own message back
        msg = await ws.recv()
        print(f"Received: {msg}")


if __name__ == "__main__":
    asyncio.run(main())
