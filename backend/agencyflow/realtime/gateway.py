"""
WebSocket Gateway

Wire framing for the channel broker. Connect with
ws://host/ws?token=<jwt> (or an Authorization header).

Message format (incoming):
- {"type": "ping"}
- {"type": "join:project", "projectId": "..."}
- {"type": "leave:project", "projectId": "..."}

Event format (outgoing): JSON objects with a "type" key, e.g.
{"type": "notification:new", "notification": {...}}
"""
import asyncio
import json
from typing import Any, Dict, Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool

from ..config.settings import settings
from ..domain.errors import AuthenticationError
from ..domain.models import ActorContext
from ..services.project_membership import ProjectMembershipService
from .broker import ChannelBroker, Session, get_broker
from ..utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

# Close code for failed authentication
WS_CLOSE_UNAUTHENTICATED = 4001


async def _close_socket(websocket: WebSocket, session: Session, broker: ChannelBroker) -> None:
    """Drop the session and close the socket so the reader stops waiting"""
    broker.disconnect(session)
    try:
        await websocket.close()
    except Exception as e:
        logger.debug(
            f"Socket already closed: {e}",
            extra={"session_id": session.session_id, "user_id": session.user_id}
        )


async def _writer(websocket: WebSocket, session: Session, broker: ChannelBroker, wake: asyncio.Event):
    """Drain the session queue into the socket; a failed or stalled write kills the session"""
    timeout = settings.broker_write_timeout_seconds
    while True:
        for event in session.drain():
            try:
                await asyncio.wait_for(websocket.send_json(event), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    f"Write timed out after {timeout}s, closing session",
                    extra={"session_id": session.session_id, "user_id": session.user_id}
                )
                await _close_socket(websocket, session, broker)
                return
            except Exception as e:
                logger.warning(
                    f"Write failed, closing session: {e}",
                    extra={"session_id": session.session_id, "user_id": session.user_id}
                )
                await _close_socket(websocket, session, broker)
                return
        if session.closed:
            return
        await wake.wait()
        wake.clear()


async def _handle_message(
    message: Dict[str, Any],
    session: Session,
    broker: ChannelBroker,
    membership: ProjectMembershipService
) -> None:
    msg_type = message.get("type", "")

    if msg_type == "ping":
        session.enqueue({"type": "pong"})

    elif msg_type == "join:project":
        project_id = message.get("projectId")
        actor = ActorContext(user_id=session.user_id, role=session.role)
        allowed = bool(project_id) and await run_in_threadpool(
            membership.has_access_by_id, actor, project_id
        )
        if allowed:
            broker.join_project(session, project_id)
            session.enqueue({"type": "joined:project", "projectId": project_id})
        else:
            session.enqueue({
                "type": "error",
                "code": "FORBIDDEN",
                "message": "Cannot join this project",
                "projectId": project_id,
            })

    elif msg_type == "leave:project":
        project_id = message.get("projectId")
        if project_id:
            broker.leave_project(session, project_id)
            session.enqueue({"type": "left:project", "projectId": project_id})

    else:
        session.enqueue({"type": "error", "code": "UNKNOWN_MESSAGE", "message": f"Unknown type: {msg_type}"})


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    token: Optional[str] = Query(None, description="Authentication token")
):
    """Main WebSocket endpoint for real-time updates"""
    broker = get_broker()
    credentials = token or websocket.headers.get("authorization")

    try:
        session = await run_in_threadpool(broker.connect, credentials or "")
    except AuthenticationError as e:
        logger.info(f"WebSocket authentication failed: {e.message}")
        await websocket.close(code=WS_CLOSE_UNAUTHENTICATED, reason=e.message)
        return

    await websocket.accept()

    loop = asyncio.get_running_loop()
    wake = asyncio.Event()
    session.set_waker(lambda: loop.call_soon_threadsafe(wake.set))
    session.enqueue({"type": "connected", "sessionId": session.session_id, "userId": session.user_id})

    writer = asyncio.create_task(_writer(websocket, session, broker, wake))
    membership = ProjectMembershipService()

    try:
        while not session.closed:
            try:
                message = await asyncio.wait_for(
                    websocket.receive_json(),
                    timeout=settings.broker_heartbeat_timeout_seconds
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "Heartbeat timed out, closing session",
                    extra={"session_id": session.session_id, "user_id": session.user_id}
                )
                break
            except json.JSONDecodeError:
                # Ignore malformed messages
                continue

            broker.heartbeat(session)
            if isinstance(message, dict):
                await _handle_message(message, session, broker, membership)

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(
            f"WebSocket error: {e}",
            extra={"session_id": session.session_id, "user_id": session.user_id}
        )
    finally:
        broker.disconnect(session)
        writer.cancel()
        try:
            await writer
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.warning(
                f"Writer ended with error: {e}",
                extra={"session_id": session.session_id, "user_id": session.user_id}
            )
