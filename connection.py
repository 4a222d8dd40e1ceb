import asyncio
import json
import uuid
from typing import Any, Optional, Union

from fastapi import WebSocket

from logging_config import get_logger

logger = get_logger(__name__)


class Connection:
    """A live websocket plus its outbound frame queue.

    send() never blocks: frames are queued on the loop that owns the websocket
    and written in order by run_writer(), one task per connection.
    """

    def __init__(self, websocket: WebSocket, connection_id: Optional[str] = None):
        self.connection_id = connection_id or str(uuid.uuid4())
        self.websocket = websocket
        self._loop = asyncio.get_running_loop()
        self._outbox: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, event: str, data: Any = None, ack: Optional[Union[int, str]] = None):
        if self._closed:
            logger.debug(f"Connection {self.connection_id} closed, dropping '{event}'")
            return
        frame = {"event": event, "data": data}
        if ack is not None:
            frame["ack"] = ack
        self._loop.call_soon_threadsafe(self._outbox.put_nowait, frame)

    def close(self):
        if self._closed:
            return
        self._closed = True
        # sentinel: lets the writer flush what is already queued, then stop
        self._loop.call_soon_threadsafe(self._outbox.put_nowait, None)

    async def run_writer(self):
        sent = 0
        while True:
            frame = await self._outbox.get()
            if frame is None:
                break
            try:
                await self.websocket.send_text(json.dumps(frame))
                sent += 1
            except Exception as e:
                logger.debug(f"Writer for connection {self.connection_id} stopped: {e}")
                # nothing drains the queue from here on
                self._closed = True
                break
        logger.debug(f"Writer for connection {self.connection_id} finished after {sent} frames")
