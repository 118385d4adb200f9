"""
Data records exchanged with a Citadel server.

All records are rebuilt from the server's replies on every call; nothing here
is cached between requests.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime, timedelta, timezone
from enum import IntEnum
from typing import List, Optional


class AccessLevel(IntEnum):
    """User access levels, in increasing order of privilege."""
    DELETED_USER = 0
    NEW_USER = 1
    PROBLEM_USER = 2
    LOCAL_USER = 3
    NETWORK_USER = 4
    PREFERRED_USER = 5
    AIDE = 6


class RoomAccess(IntEnum):
    """Room privacy levels accepted by CRE8."""
    PUBLIC = 0
    PRIVATE = 1
    PRIVATE_PASSWORD = 2
    PRIVATE_INVITATION = 3
    PERSONAL = 4


@dataclass
class Floor:
    """
    A floor as reported by LFLR.

    ``id`` is the floor number given by the server and ``position`` is the
    index of the floor within the listing it came from. Both are only valid
    for that listing snapshot.
    """
    id: int
    name: str
    room_count: int
    position: int = 0


@dataclass
class Room:
    """A room as reported by LKRA."""
    name: str
    qr_flags: int = 0
    qr2_flags: int = 0
    floor: int = 0
    order: int = 0
    ua_flags: int = 0
    view: int = 0
    default_view: int = 0
    last_modified: int = 0

    @classmethod
    def field_count(cls) -> int:
        return len(fields(cls))


@dataclass
class UserRecord:
    """
    A user record as exchanged by AGUP and ASUP.

    Field order matches the wire order of both commands.
    """
    name: str
    password: str
    flags: int
    times_called: int
    messages_posted: int
    access_level: int
    user_number: int
    timestamp: int
    purge_time: int

    @classmethod
    def field_count(cls) -> int:
        return len(fields(cls))

    def to_fields(self) -> List[str]:
        """Return the record as ASUP fields."""
        return [str(getattr(self, f.name)) for f in fields(self)]


@dataclass
class RoomAttributes:
    """Optional attributes for a room created by assert_room."""
    access: RoomAccess = RoomAccess.PUBLIC
    password: str = ""
    default_view: str = ""


@dataclass
class ServerTime:
    """The server clock as reported by TIME."""
    timestamp: int
    utc_offset: int
    dst: bool
    server_start: Optional[int] = field(default=None)

    def __int__(self) -> int:
        return self.timestamp

    @property
    def as_datetime(self) -> datetime:
        """The server time as an aware datetime in the server's zone."""
        tz = timezone(timedelta(seconds=self.utc_offset))
        return datetime.fromtimestamp(self.timestamp, tz=tz)
