"""
Citadel protocol session.

This module implements a synchronous client session for the Citadel
groupware server: one TCP connection, one command at a time.
"""

import socket
from typing import List, Optional

from .config import DEFAULT_HOST, DEFAULT_SESSIONS_DIR, DEFAULT_TIMEOUT, SessionConfig
from .exceptions import (
    AuthError, ConnectionError, NotFoundError, PermissionError, ProtocolError,
    ServerDisconnectionError, TimeoutError, UserError
)
from .models import AccessLevel, Floor, Room, RoomAttributes, ServerTime, UserRecord
from .protocol import CITADEL_PORT, ErrorCode, ProtocolHandler, Reply, ReplyCode, decode_line
from .transcript import TranscriptRecorder
from ..utils.logging import setup_logger


RECV_SIZE = 4096

_PRIVILEGE_CODES = (ErrorCode.HIGHER_ACCESS_REQUIRED, ErrorCode.NOT_LOGGED_IN)


class CitadelSession:
    """
    A session with a Citadel server over a single TCP connection.

    The connection is opened and the server banner consumed on construction.
    A session is not thread safe; callers must serialize access to it.

    Example:
        with CitadelSession(host="citadel.example.org") as session:
            session.login("Administrator", "goodpassword")
            floors = session.list_floors()
            session.assert_floor("Level 6 (Management)")
            session.logout()
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = CITADEL_PORT,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        record_session: bool = False,
        sessions_dir: str = DEFAULT_SESSIONS_DIR,
    ):
        self.host = host or DEFAULT_HOST
        self.port = port or CITADEL_PORT
        self.timeout = timeout
        self.sessions_dir = sessions_dir
        self.socket: Optional[socket.socket] = None
        self.banner: Optional[Reply] = None
        self.protocol_handler = ProtocolHandler()
        self.transcript = TranscriptRecorder() if record_session else None
        self.logger = setup_logger(__name__)
        self._buffer = b""
        self._last_command = ""
        self.connect()

    @classmethod
    def from_config(cls, config: SessionConfig) -> "CitadelSession":
        return cls(
            host=config.host,
            port=config.port,
            timeout=config.timeout,
            record_session=config.record_session,
            sessions_dir=config.sessions_dir,
        )

    def __enter__(self) -> "CitadelSession":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    @property
    def is_connected(self) -> bool:
        return self.socket is not None

    def _record_event(self, event_type: str, description: str, **details) -> None:
        if self.transcript:
            self.transcript.record_event(event_type, description, details)

    # Connection handling

    def connect(self) -> None:
        """
        Open the connection and consume the server banner.

        Raises:
            ConnectionError: If the connection cannot be established
        """
        if self.socket:
            return

        self.logger.info(f"Connecting to {self.host}:{self.port}")
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.settimeout(self.timeout)
            sock.connect((self.host, self.port))
        except socket.timeout as e:
            sock.close()
            error_msg = f"Timed out connecting to {self.host}:{self.port}"
            self.logger.error(error_msg)
            self._record_event("error", error_msg, error_type="connect_timeout")
            raise TimeoutError(error_msg) from e
        except OSError as e:
            sock.close()
            error_msg = f"Cannot connect to {self.host}:{self.port}: {e}"
            self.logger.error(error_msg)
            self._record_event("error", error_msg, error_type="connection_failed")
            raise ConnectionError(error_msg) from e

        self.socket = sock
        self._buffer = b""
        self._record_event(
            "connection",
            f"Connected to {self.host}:{self.port}",
            host=self.host, port=self.port, timeout=self.timeout,
        )

        try:
            self.banner = self._receive_reply()
        except Exception:
            self.close()
            raise

        if self.banner.is_category(ReplyCode.CIT_OK):
            self.logger.info(f"Connected: {self.banner.message}")
        else:
            self.logger.warning(f"Unexpected banner: {self.banner}")

    def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if not self.socket:
            return
        try:
            self.socket.close()
            self.logger.info("Disconnected from server")
        except OSError as e:
            self.logger.warning(f"Error during disconnect: {e}")
        finally:
            self.socket = None
            self._buffer = b""

        if self.transcript:
            self.transcript.record_event("disconnection", "Client disconnected")
            session_file = self.transcript.save_session(self.sessions_dir)
            self.logger.info(f"Transcript saved to: {session_file}")

    # Line I/O

    def _send_line(self, line: str) -> None:
        """
        Send one command line.

        Raises:
            ConnectionError: If not connected or sending fails
        """
        if not self.socket:
            raise ConnectionError("Not connected to server")

        redacted = self.protocol_handler.redact(line)
        try:
            self.socket.sendall(self.protocol_handler.encode(line))
        except socket.timeout as e:
            error_msg = f"Timeout while sending {self.protocol_handler.get_command_name(line)}"
            self.logger.error(error_msg)
            self._record_event("error", error_msg, error_type="send_timeout")
            raise TimeoutError(error_msg) from e
        except OSError as e:
            error_msg = f"Failed to send command: {e}"
            self.logger.error(error_msg)
            self._record_event("error", error_msg, error_type="send_failed")
            raise ConnectionError(error_msg) from e

        self._last_command = self.protocol_handler.get_command_name(line)
        self.logger.debug(f">>> {redacted}")
        if self.transcript:
            self.transcript.record_request(line)

    def _receive_line(self) -> str:
        """
        Receive one line, without its terminator.

        Raises:
            ConnectionError: If not connected or receiving fails
            ServerDisconnectionError: If the server closes the connection
            TimeoutError: If no complete line arrives in time
        """
        if not self.socket:
            raise ConnectionError("Not connected to server")

        try:
            while b"\n" not in self._buffer:
                chunk = self.socket.recv(RECV_SIZE)
                if not chunk:
                    error_msg = "Server closed the connection"
                    self.logger.error(error_msg)
                    self._record_event("error", error_msg, error_type="disconnected")
                    raise ServerDisconnectionError(error_msg)
                self._buffer += chunk
        except socket.timeout as e:
            error_msg = "Timeout while waiting for reply"
            self.logger.error(error_msg)
            self._record_event("error", error_msg, error_type="receive_timeout")
            raise TimeoutError(error_msg) from e
        except OSError as e:
            error_msg = f"Failed to receive reply: {e}"
            self.logger.error(error_msg)
            self._record_event("error", error_msg, error_type="receive_failed")
            raise ConnectionError(error_msg) from e

        raw, self._buffer = self._buffer.split(b"\n", 1)
        line = decode_line(raw)

        self.logger.debug(f"<<< {self.protocol_handler.redact_reply(line, self._last_command)}")
        if self.transcript:
            self.transcript.record_reply(line)
        return line

    def _receive_reply(self) -> Reply:
        return Reply.parse(self._receive_line())

    def _command(self, verb: str, *args) -> Reply:
        """Send a command and read its reply line."""
        self._send_line(self.protocol_handler.build_command(verb, *args))
        return self._receive_reply()

    def _read_listing(self) -> List[str]:
        """Read listing lines up to, not including, the terminating 000."""
        lines = []
        while True:
            line = self._receive_line()
            if self.protocol_handler.is_listing_end(line):
                return lines
            lines.append(line)

    # Reply classification

    def _fail(self, reply: Reply, error_class=ProtocolError):
        """Raise the error matching a failed reply."""
        self.logger.debug(f"Command failed: {reply}")
        if reply.code in _PRIVILEGE_CODES and error_class is ProtocolError:
            raise PermissionError(reply.message, reply.code)
        raise error_class(reply.message, reply.code)

    def _expect(self, reply: Reply, *categories: ReplyCode, error_class=ProtocolError) -> Reply:
        if not reply.is_category(*categories):
            self._fail(reply, error_class)
        return reply

    @staticmethod
    def _already_exists(reply: Reply) -> bool:
        return reply.code == ErrorCode.ALREADY_EXISTS or "already exists" in reply.message

    # Authentication

    def login(self, user: str, password: str) -> None:
        """
        Log in as this user.

        Raises:
            AuthError: If the user name or password is rejected
        """
        reply = self._command("USER", user)
        self._expect(reply, ReplyCode.MORE_DATA, error_class=AuthError)

        reply = self._command("PASS", password)
        self._expect(reply, ReplyCode.CIT_OK, error_class=AuthError)
        self.logger.info(f"Logged in as {user}")

    def logout(self) -> None:
        """Log out the current user."""
        self._expect(self._command("LOUT"), ReplyCode.CIT_OK)
        self.logger.info("Logged out")

    # Floors

    def list_floors(self) -> List[Floor]:
        """
        Retrieve the known floors in server order.

        Returns:
            List of floors; ``position`` is the index within this list
        """
        self._expect(self._command("LFLR"), ReplyCode.LISTING_FOLLOWS)
        return [
            self.protocol_handler.parse_floor(line, position)
            for position, line in enumerate(self._read_listing())
        ]

    def find_floor(self, name: str) -> Optional[Floor]:
        """Return the floor with this name from a fresh listing, if any."""
        for floor in self.list_floors():
            if floor.name == name:
                return floor
        return None

    def _require_floor(self, name: str) -> Floor:
        floor = self.find_floor(name)
        if floor is None:
            raise NotFoundError(f"no floor '{name}' known")
        return floor

    def assert_floor(self, name: str) -> None:
        """
        Create the floor, or do nothing if it exists already.

        Raises:
            PermissionError: If the server requires higher access
            ProtocolError: If the server rejects the floor otherwise
        """
        reply = self._command("CFLR", name, 1)
        if reply.is_category(ReplyCode.LISTING_FOLLOWS, ReplyCode.CIT_OK) or self._already_exists(reply):
            return
        self._fail(reply)

    def retract_floor(self, name: str) -> None:
        """
        Delete the floor with this name. Does nothing if no such floor exists.

        The floor is resolved from a listing taken immediately before the
        delete; floors changed in between by another client can race this.
        KFLR is sent the floor number the server listed, not the floor's
        position in the listing.
        """
        floor = self.find_floor(name)
        if floor is None:
            self.logger.debug(f"Floor '{name}' not present, nothing to retract")
            return

        reply = self._command("KFLR", floor.id, 1)
        if reply.is_category(ReplyCode.CIT_OK) or "not in use" in reply.message:
            return
        self._fail(reply)

    # Rooms

    def list_rooms(self, floor_name: str) -> List[Room]:
        """
        Retrieve the rooms on the given floor.

        Raises:
            NotFoundError: If the floor does not exist
        """
        floor = self._require_floor(floor_name)
        self._expect(self._command("LKRA", floor.id), ReplyCode.LISTING_FOLLOWS)
        return [self.protocol_handler.parse_room(line) for line in self._read_listing()]

    def assert_room(self, floor_name: str, room_name: str, attributes: Optional[RoomAttributes] = None) -> None:
        """
        Create the room on the given floor, or do nothing if it exists already.

        Raises:
            NotFoundError: If the floor does not exist
            PermissionError: If the server requires higher access
            ProtocolError: If the server rejects the room otherwise
        """
        floor = self._require_floor(floor_name)
        attrs = attributes or RoomAttributes()

        reply = self._command(
            "CRE8",
            1,
            room_name,
            int(attrs.access),
            attrs.password or "",
            floor.id,
            "",
            attrs.default_view or "",
            "",
        )
        if reply.is_category(ReplyCode.CIT_OK) or self._already_exists(reply):
            return
        self._fail(reply)

    def retract_room(self, room_name: str, floor_name: Optional[str] = None) -> None:
        """
        Delete a room. Does nothing if the room does not exist.

        When ``floor_name`` is given the room is only deleted if it is listed
        on that floor.

        Raises:
            NotFoundError: If ``floor_name`` names an unknown floor
            ProtocolError: If the server enters a different room than requested
        """
        if floor_name is not None:
            names = [room.name for room in self.list_rooms(floor_name)]
            if room_name not in names:
                self.logger.debug(f"Room '{room_name}' not on floor '{floor_name}', nothing to retract")
                return

        reply = self._command("GOTO", room_name)
        if reply.code == ErrorCode.ROOM_NOT_FOUND or (
                reply.is_category(ReplyCode.ERROR) and "not found" in reply.message):
            self.logger.debug(f"Room '{room_name}' not present, nothing to retract")
            return
        self._expect(reply, ReplyCode.CIT_OK)

        entered = reply.fields[0] if reply.fields else ""
        if entered.lower() != room_name.lower():
            raise ProtocolError(f"GOTO entered '{entered}' instead of '{room_name}'", reply.code)

        self._expect(self._command("KILL", 1), ReplyCode.CIT_OK)

    # Users

    def create_user(self, name: str, password: str) -> None:
        """
        Create a user with this name and password.

        Raises:
            UserError: If the user exists already or cannot be created
        """
        self._expect(self._command("CREU", name, password), ReplyCode.CIT_OK, error_class=UserError)

    def get_user(self, name: str) -> UserRecord:
        """
        Fetch a user's record.

        Raises:
            UserError: If the server refuses or knows no such user
        """
        reply = self._expect(self._command("AGUP", name), ReplyCode.CIT_OK, error_class=UserError)
        return self.protocol_handler.parse_user(reply.message)

    def _push_user(self, user: UserRecord) -> None:
        self._expect(self._command("ASUP", *user.to_fields()), ReplyCode.CIT_OK, error_class=UserError)

    def change_user(self, name: str, password: Optional[str] = None,
                    access_level: Optional[int] = None) -> UserRecord:
        """
        Change a user's password and/or access level.

        Only arguments that are not None are applied, so an access level of
        DELETED_USER (0) is set like any other.

        Returns:
            UserRecord: The record as written back to the server
        """
        user = self.get_user(name)
        if password is not None:
            user.password = password
        if access_level is not None:
            user.access_level = int(access_level)
        self._push_user(user)
        return user

    def remove_user(self, name: str) -> UserRecord:
        """
        Remove a user by setting its access level to DELETED_USER.

        The account itself stays on the server.
        """
        return self.change_user(name, access_level=AccessLevel.DELETED_USER)

    # Miscellaneous

    def echo(self, message: str) -> bool:
        """
        Check the connection by having the server echo a message.

        Raises:
            ProtocolError: If the message is not echoed back
        """
        reply = self._command("ECHO", message)
        if not reply.is_category(ReplyCode.CIT_OK) or message not in reply.message:
            raise ProtocolError(f"message not echoed ({message})", reply.code)
        return True

    def get_time(self) -> ServerTime:
        """
        Get the server's clock.

        Raises:
            ProtocolError: If the reply is not a valid TIME reply
        """
        reply = self._command("TIME")
        if not reply.is_category(ReplyCode.CIT_OK):
            raise ProtocolError(f"protocol: time failed ({reply})", reply.code)
        return self.protocol_handler.parse_time(reply.message)
