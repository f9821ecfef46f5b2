from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from dataclasses import dataclass
from pydantic import ValidationError
from typing import Any, Awaitable, Callable, Dict, List, Optional
import asyncio
import json
import logging
import uuid

from models.schemas import ChatMessage, ClientEvent, ServerEvent, SignalRequest, coerce_session_id
from room_manager import RoomRegistry, RoomState, is_initiator_transition

logger = logging.getLogger(__name__)
router = APIRouter()

SendCallable = Callable[[str], Awaitable[None]]

# Client -> server
JOIN_SESSION = "join-session"
LEAVE_SESSION = "leave-session"
SIGNAL = "signal"
CHAT_MESSAGE = "chat-message"

# Server -> client
CONNECTED = "connected"
PEER_JOINED = "peer-joined"
USERS_IN_SESSION = "users-in-session"
PEER_DISCONNECTED = "peer-disconnected"
OUTBOUND_QUEUE_SIZE = 256


@dataclass
class Outbound:
    """Frames waiting for one connection and the task writing them out."""

    queue: asyncio.Queue
    writer: asyncio.Task


class SignalingCoordinator:
    """
    Brokers peer connections between the participants of a session room.

    Every inbound event runs under one lock, so the registry change and the
    choice of recipients finish before the next event is looked at. Frames
    are only queued under the lock; each connection has its own writer task,
    so a peer that stops reading holds up nobody but itself. The participant
    whose join takes a room from one member to two gets ``peer-joined`` and
    is the one that creates the offer.
    """

    def __init__(self, registry: RoomRegistry):
        self.registry = registry
        self.connections: Dict[str, Outbound] = {}
        self._lock = asyncio.Lock()

    def connect(self, send: SendCallable) -> str:
        """Register a live connection and queue its ``connected`` frame."""
        handle = uuid.uuid4().hex
        queue = asyncio.Queue(maxsize=OUTBOUND_QUEUE_SIZE)
        writer = asyncio.create_task(self._write(handle, send, queue))
        self.connections[handle] = Outbound(queue=queue, writer=writer)
        self._send(handle, CONNECTED, handle)
        logger.info(f"Connection {handle} opened ({len(self.connections)} live)")
        return handle

    async def disconnect(self, handle: str):
        async with self._lock:
            outbound = self.connections.pop(handle, None)
            if outbound is not None:
                outbound.writer.cancel()
            affected = self.registry.remove_everywhere(handle)
            for session_id, remaining in affected.items():
                logger.info(f"Connection {handle} dropped from session {session_id}")
                self._notify_departure(session_id, handle, remaining)
        logger.info(f"Connection {handle} closed ({len(self.connections)} live)")

    async def flush(self, handles: Optional[List[str]] = None):
        """Wait until the given connections (default: all) have written every queued frame."""
        if handles is None:
            handles = list(self.connections)
        targets = [self.connections[h] for h in handles if h in self.connections]
        await asyncio.gather(*(outbound.queue.join() for outbound in targets))

    async def close(self):
        """Stop every writer task; used on shutdown."""
        writers = [outbound.writer for outbound in self.connections.values()]
        self.connections.clear()
        for writer in writers:
            writer.cancel()
        await asyncio.gather(*writers, return_exceptions=True)

    async def dispatch(self, handle: str, raw: str):
        """Decode one wire frame and route it to the matching event handler."""
        try:
            envelope = ClientEvent.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Ignoring malformed frame from {handle}: {e}")
            return

        try:
            if envelope.event == JOIN_SESSION:
                await self.join(handle, coerce_session_id(envelope.data))
            elif envelope.event == LEAVE_SESSION:
                await self.leave(handle, coerce_session_id(envelope.data))
            elif envelope.event == SIGNAL:
                request = SignalRequest.model_validate(envelope.data)
                await self.signal(handle, request.sessionId, request.data)
            elif envelope.event == CHAT_MESSAGE:
                message = ChatMessage.model_validate(envelope.data)
                await self.chat(handle, message.sessionId, envelope.data)
            else:
                logger.warning(f"Ignoring unknown event '{envelope.event}' from {handle}")
        except (ValueError, ValidationError) as e:
            logger.warning(f"Ignoring invalid '{envelope.event}' payload from {handle}: {e}")

    async def join(self, handle: str, session_id: str):
        async with self._lock:
            before = self.registry.state_of(session_id)
            members = self.registry.join(session_id, handle)
            after = RoomState.for_size(len(members))
            logger.info(f"Connection {handle} joined session {session_id} ({before.value} -> {after.value})")

            if is_initiator_transition(before, after):
                self._send(handle, PEER_JOINED)
            self._broadcast(members, USERS_IN_SESSION, members)

    async def leave(self, handle: str, session_id: str):
        async with self._lock:
            if handle not in self.registry.members_of(session_id):
                logger.debug(f"Connection {handle} is not in session {session_id}, nothing to leave")
                return
            remaining = self.registry.leave(session_id, handle)
            logger.info(f"Connection {handle} left session {session_id}")
            self._notify_departure(session_id, handle, remaining)

    async def signal(self, handle: str, session_id: str, payload: Any):
        async with self._lock:
            peers = self._peers_of(session_id, handle)
            logger.debug(f"Relaying signal from {handle} in session {session_id} to {len(peers)} peer(s)")
            self._broadcast(peers, SIGNAL, payload)

    async def chat(self, handle: str, session_id: str, message: Any):
        async with self._lock:
            peers = self._peers_of(session_id, handle)
            logger.debug(f"Relaying chat from {handle} in session {session_id} to {len(peers)} peer(s)")
            self._broadcast(peers, CHAT_MESSAGE, message)

    def rooms_snapshot(self) -> Dict[str, List[str]]:
        return {session_id: self.registry.members_of(session_id) for session_id in self.registry.session_ids()}

    def room_snapshot(self, session_id: str) -> Optional[List[str]]:
        if session_id not in self.registry:
            return None
        return self.registry.members_of(session_id)

    def _peers_of(self, session_id: str, handle: str) -> List[str]:
        return [member for member in self.registry.members_of(session_id) if member != handle]

    def _notify_departure(self, session_id: str, handle: str, remaining: List[str]):
        if not remaining:
            logger.info(f"Session {session_id} closed, no members left")
            return
        self._broadcast(remaining, PEER_DISCONNECTED, handle)
        self._broadcast(remaining, USERS_IN_SESSION, remaining)

    def _broadcast(self, handles: List[str], event: str, data: Any = None):
        frame = ServerEvent(event=event, data=data).model_dump_json()
        for handle in handles:
            self._enqueue(handle, frame)

    def _send(self, handle: str, event: str, data: Any = None):
        self._enqueue(handle, ServerEvent(event=event, data=data).model_dump_json())

    def _enqueue(self, handle: str, frame: str):
        outbound = self.connections.get(handle)
        if outbound is None:
            logger.debug(f"No live connection for {handle}, dropping frame")
            return
        try:
            outbound.queue.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning(f"Outbound queue full for connection {handle}, dropping frame")

    async def _write(self, handle: str, send: SendCallable, queue: asyncio.Queue):
        while True:
            frame = await queue.get()
            try:
                await send(frame)
            except Exception as e:
                logger.warning(f"Error sending to connection {handle}: {e}")
            finally:
                queue.task_done()


@router.websocket("/ws")
async def signaling_endpoint(websocket: WebSocket):
    coordinator: SignalingCoordinator = websocket.app.state.coordinator
    await websocket.accept()
    handle = coordinator.connect(websocket.send_text)

    try:
        while True:
            data = await websocket.receive_text()
            await coordinator.dispatch(handle, data)
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected for connection {handle}")
    except Exception as e:
        logger.error(f"Error on connection {handle}: {e}", exc_info=True)
    finally:
        await coordinator.disconnect(handle)
