# models/schemas.py
from pydantic import BaseModel, ConfigDict, field_validator
from typing import Any, List

# Wire envelope models
class ClientEvent(BaseModel):
    event: str
    data: Any = None

class SignalRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    sessionId: str
    data: Any = None

    @field_validator("sessionId", mode="before")
    @classmethod
    def validate_session_id(cls, value):
        return coerce_session_id(value)

class ChatMessage(BaseModel):
    # Relayed as received; unknown keys are kept
    model_config = ConfigDict(extra="allow")

    sessionId: str
    user: Any = None
    text: Any = None
    avatar: Any = None
    time: Any = None

    @field_validator("sessionId", mode="before")
    @classmethod
    def validate_session_id(cls, value):
        return coerce_session_id(value)

class ServerEvent(BaseModel):
    event: str
    data: Any = None


def coerce_session_id(value: Any) -> str:
    """Session ids are opaque strings; integer ids from clients are stringified."""
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ValueError("session id must be a string")
    session_id = str(value)
    if not session_id:
        raise ValueError("session id must not be empty")
    return session_id

# Room introspection models
class RoomInfo(BaseModel):
    sessionId: str
    numParticipants: int
    participants: List[str]
    state: str

class ParticipantList(BaseModel):
    sessionId: str
    participants: List[str]
    total: int
