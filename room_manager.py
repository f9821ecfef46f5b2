from enum import Enum
from typing import Dict, List
import logging

logger = logging.getLogger(__name__)


class RoomState(str, Enum):
    EMPTY = "empty"
    ONE_JOINED = "one_joined"
    TWO_JOINED = "two_joined"
    CROWDED = "crowded"

    @classmethod
    def for_size(cls, size: int) -> "RoomState":
        if size <= 0:
            return cls.EMPTY
        if size == 1:
            return cls.ONE_JOINED
        if size == 2:
            return cls.TWO_JOINED
        return cls.CROWDED


def is_initiator_transition(before: RoomState, after: RoomState) -> bool:
    """The participant whose join moves a room from one member to two starts the offer."""
    return before is RoomState.ONE_JOINED and after is RoomState.TWO_JOINED


class RoomRegistry:
    """
    In-memory table of session rooms and the connection handles inside them.

    Rooms are created by the first join and removed as soon as their last
    member leaves, so an existing room always has at least one member.
    """

    def __init__(self):
        self.rooms: Dict[str, List[str]] = {}

    def join(self, session_id: str, handle: str) -> List[str]:
        members = self.rooms.setdefault(session_id, [])
        if handle not in members:
            members.append(handle)
            logger.debug(f"Handle {handle} joined session {session_id} ({len(members)} members)")
        return list(members)

    def leave(self, session_id: str, handle: str) -> List[str]:
        members = self.rooms.get(session_id)
        if members is None:
            return []
        if handle in members:
            members.remove(handle)
            logger.debug(f"Handle {handle} left session {session_id} ({len(members)} members)")
        if not members:
            del self.rooms[session_id]
            logger.debug(f"Session {session_id} is empty, room removed")
        return list(members)

    def remove_everywhere(self, handle: str) -> Dict[str, List[str]]:
        """
        Drop a handle from every room it belongs to.

        Returns the remaining members of each room the handle was removed
        from; rooms left empty are deleted and reported with an empty list.
        """
        affected: Dict[str, List[str]] = {}
        for session_id in list(self.rooms):
            if handle in self.rooms[session_id]:
                affected[session_id] = self.leave(session_id, handle)
        return affected

    def members_of(self, session_id: str) -> List[str]:
        return list(self.rooms.get(session_id, []))

    def state_of(self, session_id: str) -> RoomState:
        return RoomState.for_size(len(self.rooms.get(session_id, [])))

    def session_ids(self) -> List[str]:
        return list(self.rooms)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self.rooms

    def __len__(self) -> int:
        return len(self.rooms)
