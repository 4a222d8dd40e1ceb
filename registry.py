from typing import Dict, List, Set

from logging_config import get_logger

logger = get_logger(__name__)


class RoomRegistry:
    """In-memory map of room id -> participant connection ids.

    Pure bookkeeping: capacity is checked by the caller, and a room is dropped
    the moment its last participant leaves, so an empty room is never visible.
    """

    def __init__(self):
        self._rooms: Dict[str, Set[str]] = {}

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)

    def room_ids(self) -> List[str]:
        return list(self._rooms)

    def list_participants(self, room_id: str) -> List[str]:
        return list(self._rooms.get(room_id, ()))

    def join(self, room_id: str, participant_id: str):
        participants = self._rooms.setdefault(room_id, set())
        participants.add(participant_id)
        logger.info(f"[room {room_id}] {participant_id} joined. Total: {len(participants)}")

    def leave(self, room_id: str, participant_id: str):
        participants = self._rooms.get(room_id)
        if participants is None:
            return

        participants.discard(participant_id)
        logger.info(f"[room {room_id}] {participant_id} left. Remaining: {len(participants)}")

        if not participants:
            del self._rooms[room_id]
            logger.info(f"[room {room_id}] Room deleted (empty)")
