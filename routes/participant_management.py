# routes/participant_management.py
from fastapi import APIRouter, Request
import logging
from models.schemas import ParticipantList

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("/room/{session_id}/participants", response_model=ParticipantList)
async def get_room_participants(session_id: str, request: Request):
    """
    Get connection handles currently in a session room; empty when the room does not exist
    """
    participants = request.app.state.coordinator.room_snapshot(session_id) or []
    logger.debug(f"Session {session_id} has {len(participants)} participants")

    return ParticipantList(
        sessionId=session_id,
        participants=participants,
        total=len(participants)
    )
