"""
Citadel protocol client.
"""

from .config import SessionConfig
from .exceptions import (
    CitadelError, ConnectionError, TimeoutError, ServerDisconnectionError,
    ProtocolError, AuthError, PermissionError, NotFoundError, UserError
)
from .models import (
    AccessLevel, Floor, Room, RoomAccess, RoomAttributes, ServerTime, UserRecord
)
from .protocol import CITADEL_PORT, ErrorCode, Reply, ReplyCode
from .session import CitadelSession

__all__ = [
    "CITADEL_PORT",
    "AccessLevel",
    "AuthError",
    "CitadelError",
    "CitadelSession",
    "ConnectionError",
    "ErrorCode",
    "Floor",
    "NotFoundError",
    "PermissionError",
    "ProtocolError",
    "Reply",
    "ReplyCode",
    "Room",
    "RoomAccess",
    "RoomAttributes",
    "ServerDisconnectionError",
    "ServerTime",
    "SessionConfig",
    "TimeoutError",
    "UserError",
    "UserRecord",
]
