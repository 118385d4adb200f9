"""
Command line client for a Citadel server.

Runs a single session operation and prints the result. Connection settings
default to the CITADEL_* environment variables (see ``config``); credentials
can be given with --user/--password or CITADEL_USER/CITADEL_PASSWORD.
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import SessionConfig
from .exceptions import CitadelError
from .models import AccessLevel, RoomAccess, RoomAttributes
from .session import CitadelSession
from ..utils.logging import configure_debug_logging, setup_logger, silence_external_loggers


SESSION_LOGGER = "src.citadel.session"


def _enum_choice(enum_class):
    """argparse type accepting an enum member name or its number."""
    def convert(value: str):
        try:
            return enum_class(int(value))
        except ValueError:
            pass
        try:
            return enum_class[value.upper()]
        except KeyError:
            names = ", ".join(member.name for member in enum_class)
            raise argparse.ArgumentTypeError(f"invalid value {value!r} (choose from {names})")
    return convert


def build_parser(config: SessionConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Citadel server client")
    parser.add_argument("--host", default=config.host, help="Server hostname or IP address")
    parser.add_argument("--port", type=int, default=config.port, help="Server port number")
    parser.add_argument("--timeout", type=float, default=config.timeout, help="Socket timeout in seconds")
    parser.add_argument("--user", default=os.getenv("CITADEL_USER"), help="Log in as this user first")
    parser.add_argument("--password", default=os.getenv("CITADEL_PASSWORD"), help="Password for --user")
    parser.add_argument("--record", action="store_true", default=config.record_session,
                        help="Record a session transcript")
    parser.add_argument("--sessions-dir", default=config.sessions_dir, help="Directory for transcripts")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log every protocol line")

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("floors", help="List floors")

    rooms = commands.add_parser("rooms", help="List the rooms on a floor")
    rooms.add_argument("floor")

    assert_floor = commands.add_parser("assert-floor", help="Create a floor unless it exists")
    assert_floor.add_argument("name")

    retract_floor = commands.add_parser("retract-floor", help="Delete a floor if it exists")
    retract_floor.add_argument("name")

    assert_room = commands.add_parser("assert-room", help="Create a room unless it exists")
    assert_room.add_argument("floor")
    assert_room.add_argument("room")
    assert_room.add_argument("--access", type=_enum_choice(RoomAccess), default=RoomAccess.PUBLIC)
    assert_room.add_argument("--room-password", default="")
    assert_room.add_argument("--view", default="")

    retract_room = commands.add_parser("retract-room", help="Delete a room if it exists")
    retract_room.add_argument("room")
    retract_room.add_argument("--floor", help="Only delete the room if it is on this floor")

    create_user = commands.add_parser("create-user", help="Create a user")
    create_user.add_argument("name")
    create_user.add_argument("new_password", metavar="password")

    change_user = commands.add_parser("change-user", help="Change a user's password or access level")
    change_user.add_argument("name")
    change_user.add_argument("--new-password")
    change_user.add_argument("--access-level", type=_enum_choice(AccessLevel))

    remove_user = commands.add_parser("remove-user", help="Mark a user as deleted")
    remove_user.add_argument("name")

    echo = commands.add_parser("echo", help="Have the server echo a message")
    echo.add_argument("message")

    commands.add_parser("time", help="Show the server time")

    return parser


def run_command(session: CitadelSession, args: argparse.Namespace, console: Console) -> None:
    """Run the selected command on an open session."""
    command = args.command

    if command == "floors":
        table = Table(title="Floors", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="cyan", justify="right")
        table.add_column("Name", style="white")
        table.add_column("Rooms", style="green", justify="right")
        for floor in session.list_floors():
            table.add_row(str(floor.id), floor.name, str(floor.room_count))
        console.print(table)

    elif command == "rooms":
        table = Table(title=f"Rooms on {args.floor}", show_header=True, header_style="bold magenta")
        table.add_column("Name", style="cyan")
        table.add_column("Flags", style="white")
        table.add_column("Floor", style="white", justify="right")
        table.add_column("View", style="green", justify="right")
        table.add_column("Last Modified", style="yellow", justify="right")
        for room in session.list_rooms(args.floor):
            table.add_row(room.name, str(room.qr_flags), str(room.floor), str(room.view), str(room.last_modified))
        console.print(table)

    elif command == "assert-floor":
        session.assert_floor(args.name)
        console.print(f"[green]Floor '{escape(args.name)}' is present[/green]")

    elif command == "retract-floor":
        session.retract_floor(args.name)
        console.print(f"[green]Floor '{escape(args.name)}' is absent[/green]")

    elif command == "assert-room":
        attributes = RoomAttributes(access=args.access, password=args.room_password, default_view=args.view)
        session.assert_room(args.floor, args.room, attributes)
        console.print(f"[green]Room '{escape(args.room)}' is present on '{escape(args.floor)}'[/green]")

    elif command == "retract-room":
        session.retract_room(args.room, floor_name=args.floor)
        console.print(f"[green]Room '{escape(args.room)}' is absent[/green]")

    elif command == "create-user":
        session.create_user(args.name, args.new_password)
        console.print(f"[green]User '{escape(args.name)}' created[/green]")

    elif command == "change-user":
        user = session.change_user(args.name, password=args.new_password, access_level=args.access_level)
        console.print(f"[green]User '{escape(user.name)}' updated, access level {user.access_level}[/green]")

    elif command == "remove-user":
        session.remove_user(args.name)
        console.print(f"[green]User '{escape(args.name)}' marked as deleted[/green]")

    elif command == "echo":
        session.echo(args.message)
        console.print(escape(args.message))

    elif command == "time":
        server_time = session.get_time()
        table = Table(title="Server Time", show_header=False)
        table.add_column("Property", style="cyan")
        table.add_column("Value", style="white")
        table.add_row("Time", server_time.as_datetime.isoformat())
        table.add_row("Timestamp", str(server_time.timestamp))
        table.add_row("UTC Offset", f"{server_time.utc_offset}s")
        table.add_row("DST", "yes" if server_time.dst else "no")
        if server_time.server_start is not None:
            table.add_row("Server Start", str(server_time.server_start))
        console.print(table)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the Citadel client."""
    console = Console()
    try:
        config = SessionConfig.from_env()
    except ValueError as e:
        console.print(f"[red]Configuration error: {escape(str(e))}[/red]")
        return 1

    parser = build_parser(config)
    args = parser.parse_args(argv)
    if args.command == "change-user" and args.new_password is None and args.access_level is None:
        parser.error("change-user needs --new-password or --access-level")

    setup_logger(SESSION_LOGGER, level=logging.DEBUG if args.verbose else logging.WARNING)
    silence_external_loggers()
    if args.verbose:
        configure_debug_logging()

    config.host = args.host
    config.port = args.port
    config.timeout = args.timeout
    config.record_session = args.record
    config.sessions_dir = args.sessions_dir

    try:
        with CitadelSession.from_config(config) as session:
            if args.user:
                session.login(args.user, args.password or "")
            run_command(session, args, console)
            if args.user:
                session.logout()
        return 0

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        return 1
    except CitadelError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
