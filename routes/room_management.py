from fastapi import APIRouter, HTTPException, Request, status
import logging
from models.schemas import RoomInfo
from room_manager import RoomState

logger = logging.getLogger(__name__)
router = APIRouter()

def _room_info(session_id: str, members: list) -> RoomInfo:
    return RoomInfo(
        sessionId=session_id,
        numParticipants=len(members),
        participants=members,
        state=RoomState.for_size(len(members)).value,
    )

@router.get("/rooms")
async def list_rooms(request: Request):
    """
    List all live session rooms
    """
    coordinator = request.app.state.coordinator
    room_list = [
        _room_info(session_id, members)
        for session_id, members in coordinator.rooms_snapshot().items()
    ]

    return {
        "rooms": room_list,
        "total": len(room_list)
    }

@router.get("/room/{session_id}", response_model=RoomInfo)
async def get_room_info(session_id: str, request: Request):
    """
    Get membership of a specific session room
    """
    members = request.app.state.coordinator.room_snapshot(session_id)
    if members is None:
        logger.info(f"Room lookup for unknown session: {session_id}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Room '{session_id}' not found"
        )

    return _room_info(session_id, members)
