"""
FormRelay Backend — Socket.IO Server
======================================

What:  The real-time channel clients use to receive notification events.
How:   A python-socketio AsyncServer in ASGI mode. main.py wraps the FastAPI
       app with socketio.ASGIApp so both share one port.

Protocol:
    client → server  "register"      payload: "<userId>" or {"userId": "..."}
    server → client  "notification"  payload: {title, message, type, formId?}
    server → client  "registered"    payload: {"userId": "..."} (ack)

    Disconnect removes the session from the directory automatically.
"""

import logging
import uuid
from typing import Any, Optional

import socketio

from formrelay.config import settings
from formrelay.services.notification_directory import NotificationDirectory

logger = logging.getLogger(__name__)

# Socket.IO expects "*" as a bare string rather than a list entry
_origins = settings.cors_origins_list
sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins="*" if "*" in _origins else _origins,
    logger=False,
    engineio_logger=False,
)

notification_directory = NotificationDirectory()


def _extract_account_id(payload: Any) -> Optional[str]:
    """Canonical lower-case UUID string, or None when the payload has no valid id."""
    if isinstance(payload, dict):
        payload = payload.get("userId") or payload.get("user_id")
    if payload is None:
        return None
    try:
        return str(uuid.UUID(str(payload).strip()))
    except ValueError:
        return None


@sio.event
async def connect(sid, environ, auth=None):
    logger.info("Socket connected: %s", sid)


@sio.on("register")
async def register(sid, payload=None):
    account_id = _extract_account_id(payload)
    if account_id is None:
        logger.warning("Socket %s sent register without a valid user id", sid)
        return
    notification_directory.register(account_id, sid)
    await sio.emit("registered", {"userId": account_id}, to=sid)


@sio.event
async def disconnect(sid, *args):
    account_id = notification_directory.unregister(sid)
    logger.info("Socket disconnected: %s (account=%s)", sid, account_id)
