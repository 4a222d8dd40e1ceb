import uuid
from typing import Any, Callable, Dict, Optional, Set, Type, TypeVar

from pydantic import BaseModel, ValidationError

from constants import MAX_PARTICIPANTS
from logging_config import get_logger
from registry import RoomRegistry
from schemas.signaling import (
    ConnectedEvent,
    CreateRoomResponse,
    ErrorResponse,
    IceCandidateEvent,
    IceCandidateRequest,
    JoinRoomRequest,
    JoinRoomResponse,
    LeaveRoomRequest,
    PeerEvent,
    RequestOfferRequest,
    SessionDescriptionEvent,
    SessionDescriptionRequest,
)

logger = get_logger(__name__)

ROOM_ID_REQUIRED = "roomId required"
ROOM_FULL = "room is full"
UNKNOWN_EVENT = "unknown event"

Request = TypeVar("Request", bound=BaseModel)


class SignalingError(Exception):
    """Rejects an inbound event; the reason is sent back in the ack as {error}."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


def parse_payload(model: Type[Request], payload: Any) -> Request:
    # A malformed payload is treated as one with every field missing.
    if not isinstance(payload, dict):
        return model()
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        logger.debug(f"Invalid {model.__name__} payload: {e}")
        return model()


class SignalingHub:
    """Routes signaling events between live connections.

    Connections only need a `connection_id` attribute and a non-blocking
    `send(event, data, ack=None)`. Every handler runs to completion without
    awaiting, so each event is applied atomically on the event loop.
    """

    def __init__(self, registry: Optional[RoomRegistry] = None, capacity: int = MAX_PARTICIPANTS):
        self.registry = registry if registry is not None else RoomRegistry()
        self.capacity = capacity
        self._connections: Dict[str, Any] = {}
        # room ids each connection joined through this hub, walked on teardown
        self._memberships: Dict[str, Set[str]] = {}
        self._handlers: Dict[str, Callable[[str, Any], Optional[dict]]] = {
            "create-room": self.create_room,
            "join-room": self.join_room,
            "leave-room": self.leave_room,
            "request-offer": self.request_offer,
            "offer": self.offer,
            "answer": self.answer,
            "ice-candidate": self.ice_candidate,
        }

    # connection lifecycle

    def connect(self, connection):
        connection_id = connection.connection_id
        self._connections[connection_id] = connection
        self._memberships[connection_id] = set()
        connection.send("connected", ConnectedEvent(socketId=connection_id).model_dump())
        logger.info(f"Socket connected {connection_id} (live: {len(self._connections)})")

    def disconnecting(self, connection_id: str):
        for room_id in sorted(self._memberships.get(connection_id, ())):
            self.broadcast(room_id, "user-left", PeerEvent(socketId=connection_id).model_dump(), skip=connection_id)
            self.registry.leave(room_id, connection_id)
        self._memberships.pop(connection_id, None)

    def disconnect(self, connection_id: str):
        if connection_id not in self._connections:
            return
        logger.info(f"Socket disconnecting: {connection_id}")
        self.disconnecting(connection_id)
        del self._connections[connection_id]
        logger.info(f"Socket disconnected: {connection_id} (live: {len(self._connections)})")

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._connections

    def rooms_of(self, connection_id: str) -> Set[str]:
        return set(self._memberships.get(connection_id, ()))

    # addressing

    def emit(self, target_id: str, event: str, data: Any) -> bool:
        connection = self._connections.get(target_id)
        if connection is None:
            logger.debug(f"Dropping '{event}' for unknown connection {target_id}")
            return False
        connection.send(event, data)
        return True

    def broadcast(self, room_id: str, event: str, data: Any, skip: Optional[str] = None) -> int:
        delivered = 0
        for participant_id in self.registry.list_participants(room_id):
            if participant_id != skip and self.emit(participant_id, event, data):
                delivered += 1
        return delivered

    # protocol

    def dispatch(self, connection_id: str, event: str, payload: Any = None) -> Optional[dict]:
        """Apply one inbound event and return its ack payload, or None when there is nothing to ack."""
        handler = self._handlers.get(event)
        if handler is None:
            logger.warning(f"Unknown event '{event}' from {connection_id}")
            return ErrorResponse(error=UNKNOWN_EVENT).model_dump()
        try:
            return handler(connection_id, payload)
        except SignalingError as e:
            logger.warning(f"'{event}' from {connection_id} rejected: {e.reason}")
            return ErrorResponse(error=e.reason).model_dump()

    def _join(self, connection_id: str, room_id: str):
        self.registry.join(room_id, connection_id)
        self._memberships.setdefault(connection_id, set()).add(room_id)

    def _others(self, room_id: str, connection_id: str) -> list[str]:
        return [p for p in self.registry.list_participants(room_id) if p != connection_id]

    def create_room(self, connection_id: str, payload: Any = None) -> dict:
        room_id = str(uuid.uuid4())
        self._join(connection_id, room_id)
        logger.info(f"[room {room_id}] created by {connection_id}")
        return CreateRoomResponse(
            roomId=room_id,
            selfId=connection_id,
            participants=self._others(room_id, connection_id),
        ).model_dump()

    def join_room(self, connection_id: str, payload: Any = None) -> dict:
        room_id = parse_payload(JoinRoomRequest, payload).roomId
        if not room_id:
            raise SignalingError(ROOM_ID_REQUIRED)

        current = self.registry.list_participants(room_id)

        # Reconnecting client recomputing its state; its own stale membership
        # must not make the room look full.
        if connection_id in current:
            logger.info(f"[room {room_id}] {connection_id} already in room")
            return JoinRoomResponse(selfId=connection_id, participants=self._others(room_id, connection_id)).model_dump()

        if len(current) >= self.capacity:
            logger.info(f"[room {room_id}] Room full. Current: {len(current)}")
            raise SignalingError(ROOM_FULL)

        self._join(connection_id, room_id)
        others = self._others(room_id, connection_id)
        logger.info(f"[room {room_id}] {connection_id} joined. Existing: {len(current)}, Others: {len(others)}")

        # existing peers initiate the offer
        if current:
            self.broadcast(room_id, "user-joined", PeerEvent(socketId=connection_id).model_dump(), skip=connection_id)

        return JoinRoomResponse(selfId=connection_id, participants=others).model_dump()

    def leave_room(self, connection_id: str, payload: Any = None) -> None:
        room_id = parse_payload(LeaveRoomRequest, payload).roomId
        if not room_id:
            logger.debug(f"leave-room from {connection_id} without roomId ignored")
            return None

        self.registry.leave(room_id, connection_id)
        self._memberships.get(connection_id, set()).discard(room_id)
        self.broadcast(room_id, "user-left", PeerEvent(socketId=connection_id).model_dump(), skip=connection_id)
        logger.info(f"[room {room_id}] {connection_id} left")
        return None

    def request_offer(self, connection_id: str, payload: Any = None) -> None:
        to = parse_payload(RequestOfferRequest, payload).to
        if not to:
            return None
        logger.info(f"[room] {connection_id} requesting offer from {to}")
        self.emit(to, "user-joined", PeerEvent(socketId=connection_id).model_dump())
        return None

    def _relay_session_description(self, event: str, connection_id: str, payload: Any) -> None:
        request = parse_payload(SessionDescriptionRequest, payload)
        if not request.to or not request.sdp:
            logger.debug(f"[WebRTC] Invalid {event} - to: {request.to}, sdp: {bool(request.sdp)}")
            return None
        logger.debug(f"[WebRTC] Relaying {event} from {connection_id} to {request.to}")
        message = SessionDescriptionEvent(from_=connection_id, sdp=request.sdp)
        self.emit(request.to, event, message.model_dump(by_alias=True))
        return None

    def offer(self, connection_id: str, payload: Any = None) -> None:
        return self._relay_session_description("offer", connection_id, payload)

    def answer(self, connection_id: str, payload: Any = None) -> None:
        return self._relay_session_description("answer", connection_id, payload)

    def ice_candidate(self, connection_id: str, payload: Any = None) -> None:
        request = parse_payload(IceCandidateRequest, payload)
        if not request.to or not request.candidate:
            logger.debug(f"[WebRTC] Invalid ICE candidate - to: {request.to}, candidate: {bool(request.candidate)}")
            return None
        logger.debug(f"[WebRTC] Relaying ICE from {connection_id} to {request.to}")
        message = IceCandidateEvent(from_=connection_id, candidate=request.candidate)
        self.emit(request.to, "ice-candidate", message.model_dump(by_alias=True))
        return None
