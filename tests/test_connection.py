import asyncio
import json

from connection import Connection


class RecordingSocket:
    def __init__(self, fail=False):
        self.fail = fail
        self.frames = []

    async def send_text(self, text):
        if self.fail:
            raise RuntimeError("socket closed")
        self.frames.append(json.loads(text))


def test_frames_are_written_in_order_then_writer_stops():
    socket = RecordingSocket()

    async def scenario():
        connection = Connection(socket, connection_id="A")
        writer = asyncio.create_task(connection.run_writer())
        connection.send("connected", {"socketId": "A"})
        connection.send("ack", {"ok": True}, ack=3)
        connection.close()
        connection.send("late", {})
        await asyncio.wait_for(writer, timeout=1)
        return connection

    connection = asyncio.run(scenario())

    assert connection.closed
    assert socket.frames == [
        {"event": "connected", "data": {"socketId": "A"}},
        {"event": "ack", "data": {"ok": True}, "ack": 3},
    ]


def test_writer_stops_when_socket_fails():
    socket = RecordingSocket(fail=True)

    async def scenario():
        connection = Connection(socket)
        writer = asyncio.create_task(connection.run_writer())
        connection.send("offer", {"from": "B", "sdp": "x"})
        await asyncio.wait_for(writer, timeout=1)
        return connection

    connection = asyncio.run(scenario())

    assert socket.frames == []
    assert connection.closed


def test_send_after_failed_write_is_dropped():
    socket = RecordingSocket(fail=True)

    async def scenario():
        connection = Connection(socket, connection_id="B")
        writer = asyncio.create_task(connection.run_writer())
        connection.send("offer", {"from": "A", "sdp": "x"})
        await asyncio.wait_for(writer, timeout=1)
        connection.send("answer", {"from": "A", "sdp": "y"})
        connection.close()
        await asyncio.sleep(0)
        return connection

    connection = asyncio.run(scenario())

    assert connection.closed
    assert connection._outbox.empty()
