import pytest

from hub import SignalingHub
from registry import RoomRegistry


class FakeConnection:
    """Records outbound frames instead of writing to a websocket."""

    def __init__(self, connection_id):
        self.connection_id = connection_id
        self.sent = []

    def send(self, event, data=None, ack=None):
        self.sent.append((event, data))

    def events(self, name):
        return [data for event, data in self.sent if event == name]

    def clear(self):
        self.sent.clear()


@pytest.fixture
def registry():
    return RoomRegistry()


@pytest.fixture
def hub(registry):
    return SignalingHub(registry=registry)


@pytest.fixture
def make_connection():
    return FakeConnection


@pytest.fixture
def peers(hub):
    """Three connected peers A, B and C with their connect frames cleared."""
    connections = {}
    for name in ("A", "B", "C"):
        connection = FakeConnection(name)
        hub.connect(connection)
        connection.clear()
        connections[name] = connection
    return connections
