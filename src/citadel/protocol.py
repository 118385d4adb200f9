"""
Citadel client/server protocol implementation.

This module handles building command lines and parsing the numeric-coded,
pipe-delimited reply lines of the Citadel application protocol.

Reply Format:
CODE (3 digits) | SPACE | MESSAGE (free text, fields separated by '|')

Listings (code class 1) continue with one record per line and end with a
line containing exactly ``000``.
"""

import re
from enum import IntEnum
from typing import List, Optional

from .exceptions import ProtocolError
from .models import Floor, Room, ServerTime, UserRecord


CITADEL_PORT = 504
LISTING_END = "000"
FIELD_SEPARATOR = "|"
ENCODING = "utf-8"
REDACTED = "****"


class ReplyCode(IntEnum):
    """Reply code classes; the leading digit of every reply code."""
    LISTING_FOLLOWS = 100
    CIT_OK = 200
    MORE_DATA = 300
    SEND_LISTING = 400
    ERROR = 500
    BINARY_FOLLOWS = 600
    SEND_BINARY = 700
    START_CHAT_MODE = 800


class ErrorCode(IntEnum):
    """Detail codes the server sends with the ERROR class."""
    INTERNAL_ERROR = 510
    NOT_LOGGED_IN = 520
    CMD_NOT_SUPPORTED = 530
    PASSWORD_REQUIRED = 540
    HIGHER_ACCESS_REQUIRED = 550
    NOT_HERE = 560
    INVALID_FLOOR_OPERATION = 561
    NO_SUCH_USER = 570
    ROOM_NOT_FOUND = 572
    ALREADY_EXISTS = 574


_REPLY_PATTERN = re.compile(r"^(\d{3})(?: (.*))?$", re.DOTALL)


def split_fields(text: str) -> List[str]:
    """
    Split a reply message into its '|' separated fields.

    A single trailing empty field, left by a closing separator, is dropped.
    """
    parts = text.split(FIELD_SEPARATOR)
    if len(parts) > 1 and parts[-1] == "":
        parts.pop()
    return parts


def decode_line(data: bytes) -> str:
    """Decode a raw line from the wire and strip its terminator."""
    return data.decode(ENCODING, errors="replace").rstrip("\r\n")


class Reply:
    """
    A single reply line from the server.
    """

    def __init__(self, code: int, message: str = ""):
        self.code = code
        self.message = message

    @classmethod
    def parse(cls, line: str) -> "Reply":
        """
        Parse a reply line.

        Args:
            line: Reply line, with or without its line terminator

        Returns:
            Reply: Parsed reply

        Raises:
            ProtocolError: If the line does not start with a reply code
        """
        match = _REPLY_PATTERN.match(line.rstrip("\r\n"))
        if not match:
            raise ProtocolError(f"Malformed reply line: {line!r}")
        return cls(int(match.group(1)), match.group(2) or "")

    @property
    def category(self) -> Optional[ReplyCode]:
        """The reply class, or None for a class the protocol does not define."""
        try:
            return ReplyCode((self.code // 100) * 100)
        except ValueError:
            return None

    @property
    def fields(self) -> List[str]:
        return split_fields(self.message)

    def is_category(self, *categories: ReplyCode) -> bool:
        return self.category in categories

    def __eq__(self, other) -> bool:
        if not isinstance(other, Reply):
            return NotImplemented
        return self.code == other.code and self.message == other.message

    def __str__(self) -> str:
        return f"{self.code} {self.message}" if self.message else str(self.code)

    def __repr__(self) -> str:
        return f"Reply(code={self.code}, message={self.message!r})"


def _to_int(value: str, what: str) -> int:
    if value == "":
        return 0
    try:
        return int(value)
    except ValueError:
        raise ProtocolError(f"Invalid {what} value: {value!r}")


class ProtocolHandler:
    """
    Builds Citadel command lines and turns reply fields into records.
    """

    def build_command(self, verb: str, *args) -> str:
        """
        Build a command line (without terminator).

        Arguments are joined with '|'. A single argument may itself contain
        '|', which lets free-text commands such as ECHO pass through unchanged.

        Raises:
            ProtocolError: If an argument would break the line framing
        """
        values = ["" if arg is None else str(arg) for arg in args]
        for value in values:
            if "\n" in value or "\r" in value:
                raise ProtocolError(f"Line break not allowed in {verb} argument")
            if len(values) > 1 and FIELD_SEPARATOR in value:
                raise ProtocolError(
                    f"Field separator not allowed in {verb} argument: {value!r}"
                )
        if not values:
            return verb
        return f"{verb} {FIELD_SEPARATOR.join(values)}"

    def encode(self, line: str) -> bytes:
        return (line + "\n").encode(ENCODING)

    def get_command_name(self, line: str) -> str:
        """Return the command verb of a command line."""
        return line.split(" ", 1)[0].upper() if line else ""

    def redact(self, line: str) -> str:
        """Mask passwords in a command line for logs and transcripts."""
        verb = self.get_command_name(line)
        if " " not in line:
            return line
        args = line.split(" ", 1)[1]

        if verb == "PASS":
            return f"{verb} {REDACTED}"
        if verb in ("CREU", "ASUP"):
            parts = args.split(FIELD_SEPARATOR)
            if len(parts) > 1:
                parts[1] = REDACTED
            return f"{verb} {FIELD_SEPARATOR.join(parts)}"
        return line

    def redact_reply(self, line: str, command: Optional[str] = None) -> str:
        """
        Mask passwords in a reply line for logs and transcripts.

        Args:
            line: The reply line, without terminator
            command: Verb of the command the reply answers, if known
        """
        if command != "AGUP" or not line.startswith("2") or " " not in line:
            return line
        code, message = line.split(" ", 1)
        parts = message.split(FIELD_SEPARATOR)
        if len(parts) > 1:
            parts[1] = REDACTED
        return f"{code} {FIELD_SEPARATOR.join(parts)}"

    def is_listing_end(self, line: str) -> bool:
        return line.rstrip("\r\n") == LISTING_END

    def parse_floor(self, line: str, position: int) -> Floor:
        """Parse an LFLR listing line: ``id|name|room_count``."""
        parts = split_fields(line)
        if len(parts) != 3:
            raise ProtocolError(f"Malformed floor line: {line!r}")
        floor_id, name, room_count = parts
        return Floor(
            id=_to_int(floor_id, "floor id"),
            name=name,
            room_count=_to_int(room_count, "room count"),
            position=position,
        )

    def parse_room(self, line: str) -> Room:
        """Parse an LKRA listing line into a Room."""
        parts = split_fields(line)
        count = Room.field_count()
        if len(parts) < count:
            raise ProtocolError(f"Malformed room line: {line!r}")
        name, *numbers = parts[:count]
        (qr_flags, qr2_flags, floor, order,
         ua_flags, view, default_view, last_modified) = [
            _to_int(value, "room") for value in numbers
        ]
        return Room(
            name=name,
            qr_flags=qr_flags,
            qr2_flags=qr2_flags,
            floor=floor,
            order=order,
            ua_flags=ua_flags,
            view=view,
            default_view=default_view,
            last_modified=last_modified,
        )

    def parse_user(self, message: str) -> UserRecord:
        """Parse the message of an AGUP reply into a UserRecord."""
        parts = split_fields(message)
        if len(parts) < UserRecord.field_count():
            raise ProtocolError(f"Malformed user record: {message!r}")
        name, password, *numbers = parts[:UserRecord.field_count()]
        (flags, times_called, messages_posted, access_level,
         user_number, timestamp, purge_time) = [
            _to_int(value, "user") for value in numbers
        ]
        return UserRecord(
            name=name,
            password=password,
            flags=flags,
            times_called=times_called,
            messages_posted=messages_posted,
            access_level=access_level,
            user_number=user_number,
            timestamp=timestamp,
            purge_time=purge_time,
        )

    def parse_time(self, message: str) -> ServerTime:
        """
        Parse the message of a TIME reply.

        The server sends ``timestamp|utc_offset|dst|server_start``; older
        servers omit the last field.
        """
        parts = split_fields(message)
        if len(parts) < 3:
            raise ProtocolError(f"Malformed time reply: {message!r}")
        server_start = _to_int(parts[3], "time") if len(parts) > 3 else None
        return ServerTime(
            timestamp=_to_int(parts[0], "time"),
            utc_offset=_to_int(parts[1], "time"),
            dst=_to_int(parts[2], "time") != 0,
            server_start=server_start,
        )
