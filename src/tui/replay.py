"""
Transcript replay viewer.

This module provides an interactive terminal application for stepping
through recorded Citadel session transcripts.
"""

import argparse
import json
import sys
from datetime import datetime
from typing import Dict, List, Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.layout import Layout
from rich.live import Live
from rich import box

from ..citadel.transcript import TranscriptLoader


MAX_VALUE_LENGTH = 100


def _truncate(value: str, limit: int = MAX_VALUE_LENGTH) -> str:
    if len(value) > limit:
        return value[:limit - 3] + "..."
    return value


def reply_style(code) -> str:
    """Colour for a reply line, by reply class."""
    if code is None:
        return "white"
    category = code // 100
    if category == 1:
        return "cyan"
    if category == 2:
        return "green"
    if category == 3:
        return "yellow"
    if category == 5:
        return "red"
    return "magenta"


class TranscriptReplayTUI:
    """
    Interactive viewer for recorded Citadel transcripts.

    Keybindings:
    - N/n: Next step
    - P/p: Previous step
    - Q/q: Quit
    """

    def __init__(self, session_file: str):
        self.session_file = session_file
        self.console = Console()
        self.interactions: List[Dict[str, Any]] = []
        self.current_step = 0
        self.session_data: Dict[str, Any] = {}
        self.load_session()

    def load_session(self) -> None:
        """Load transcript data from file."""
        try:
            self.session_data = TranscriptLoader.load_session(self.session_file)
            self.interactions = self.session_data.get("interactions", [])

            if not self.interactions:
                self.console.print("[red]No interactions found in transcript[/red]")
                sys.exit(1)

        except FileNotFoundError:
            self.console.print(f"[red]Transcript not found: {self.session_file}[/red]")
            sys.exit(1)
        except json.JSONDecodeError:
            self.console.print(f"[red]Invalid JSON in transcript: {self.session_file}[/red]")
            sys.exit(1)

    def create_header_panel(self) -> Panel:
        """Create the header panel with transcript information."""
        session_id = self.session_data.get("session_id", "Unknown")
        start_time = self.session_data.get("start_time", 0)
        duration = self.session_data.get("duration", 0)
        total_interactions = self.session_data.get("total_interactions", len(self.interactions))

        start_time_str = datetime.fromtimestamp(start_time).strftime("%Y-%m-%d %H:%M:%S")

        header_text = Text()
        header_text.append("CITADEL SESSION REPLAY\n", style="bold cyan")
        header_text.append(f"Session ID: {session_id}\n", style="cyan")
        header_text.append(f"Start Time: {start_time_str}\n", style="white")
        header_text.append(f"Duration: {duration:.2f}s\n", style="white")
        header_text.append(f"Total Interactions: {total_interactions}", style="white")

        return Panel(header_text, title="Transcript", border_style="blue")

    def create_navigation_panel(self) -> Panel:
        """Create the navigation panel with current step info."""
        nav_text = Text()
        nav_text.append(f"Step {self.current_step + 1} of {len(self.interactions)}\n", style="bold yellow")
        nav_text.append("\nControls:\n", style="bold")
        nav_text.append("N/n - Next step\n", style="green")
        nav_text.append("P/p - Previous step\n", style="green")
        nav_text.append("Q/q - Quit", style="red")

        return Panel(nav_text, title="Navigation", border_style="green")

    def create_interaction_panel(self) -> Panel:
        """Create the panel showing the current interaction."""
        if not self.interactions or self.current_step >= len(self.interactions):
            return Panel("No interaction to display", title="Interaction", border_style="red")

        interaction = self.interactions[self.current_step]
        interaction_type = interaction.get("type", "unknown")

        table = Table(show_header=True, header_style="bold magenta", box=box.ROUNDED)
        table.add_column("Property", style="cyan", width=20)
        table.add_column("Value", style="white")

        timestamp = interaction.get("timestamp", 0)
        time_str = datetime.fromtimestamp(timestamp).strftime("%H:%M:%S.%f")[:-3]

        table.add_row("Timestamp", time_str)
        table.add_row("Relative Time", f"{interaction.get('relative_time', 0):.3f}s")
        table.add_row("Type", interaction_type)

        border_color = "white"
        if interaction_type == "request":
            table.add_row("Direction", interaction.get("direction", ""))
            table.add_row("Command", interaction.get("command", ""))
            table.add_row("Line", _truncate(interaction.get("line", "")))
            border_color = "blue"

        elif interaction_type == "reply":
            code = interaction.get("code")
            table.add_row("Direction", interaction.get("direction", ""))
            table.add_row("Code", str(code) if code is not None else "-")
            table.add_row("Line", _truncate(interaction.get("line", "")))
            border_color = reply_style(code)

        elif interaction_type == "event":
            event_type = interaction.get("event_type", "")
            table.add_row("Event Type", event_type)

            details = interaction.get("details", {})
            if details:
                details_str = ", ".join(f"{k}: {v}" for k, v in details.items())
                table.add_row("Details", _truncate(details_str))
            border_color = "red" if "error" in event_type.lower() else "yellow"

        description = interaction.get("description", "")
        if description:
            table.add_row("Description", description)

        return Panel(table, title="Current Interaction", border_style=border_color)

    def timeline_entry(self, interaction: Dict[str, Any]) -> str:
        """One-line summary of an interaction for the timeline."""
        time_offset = interaction.get("relative_time", 0)
        interaction_type = interaction.get("type", "unknown")

        if interaction_type == "request":
            return f"{time_offset:6.2f}s → {interaction.get('command', 'UNKNOWN')}"
        if interaction_type == "reply":
            code = interaction.get("code")
            label = str(code) if code is not None else _truncate(interaction.get("line", ""), 24)
            return f"{time_offset:6.2f}s ← {label}"
        return f"{time_offset:6.2f}s • {interaction.get('event_type', 'event')}"

    def create_timeline_panel(self) -> Panel:
        """Create a timeline panel showing the interaction sequence."""
        timeline_text = Text()

        window_size = 10
        start_idx = max(0, self.current_step - window_size // 2)
        end_idx = min(len(self.interactions), start_idx + window_size)

        for i in range(start_idx, end_idx):
            interaction = self.interactions[i]
            entry = self.timeline_entry(interaction)

            if i == self.current_step:
                timeline_text.append(f"► {entry}\n", style="bold yellow on blue")
                continue

            interaction_type = interaction.get("type")
            if interaction_type == "request":
                style = "blue"
            elif interaction_type == "reply":
                style = reply_style(interaction.get("code"))
            elif "error" in interaction.get("event_type", "").lower():
                style = "red"
            else:
                style = "white"
            timeline_text.append(f"  {entry}\n", style=style)

        return Panel(timeline_text, title="Timeline", border_style="magenta")

    def create_layout(self) -> Layout:
        """Create the main layout."""
        layout = Layout()

        layout.split_column(
            Layout(name="header", size=8),
            Layout(name="main"),
            Layout(name="footer", size=3)
        )
        layout["main"].split_row(
            Layout(name="left"),
            Layout(name="right", ratio=2)
        )
        layout["left"].split_column(
            Layout(name="navigation", size=10),
            Layout(name="timeline")
        )

        layout["header"].update(self.create_header_panel())
        layout["navigation"].update(self.create_navigation_panel())
        layout["timeline"].update(self.create_timeline_panel())
        layout["right"].update(self.create_interaction_panel())

        footer_text = Text("Use N/n (next), P/p (previous), Q/q (quit) to navigate",
                           style="bold white on black", justify="center")
        layout["footer"].update(Panel(footer_text, border_style="white"))

        return layout

    def next_step(self) -> bool:
        """Move to the next step. Returns True if moved, False if at end."""
        if self.current_step < len(self.interactions) - 1:
            self.current_step += 1
            return True
        return False

    def previous_step(self) -> bool:
        """Move to the previous step. Returns True if moved, False if at beginning."""
        if self.current_step > 0:
            self.current_step -= 1
            return True
        return False

    def handle_key(self, key: str) -> bool:
        """Apply a navigation key. Returns False when the viewer should quit."""
        key = key.lower()
        if key == 'q':
            return False
        if key == 'n':
            self.next_step()
        elif key == 'p':
            self.previous_step()
        return True

    def run(self) -> None:
        """Run the interactive viewer."""
        try:
            import termios
            import tty
        except ImportError:
            self._run_line_mode()
            return

        old_settings = termios.tcgetattr(sys.stdin)
        with Live(self.create_layout(), refresh_per_second=10, screen=True) as live:
            try:
                tty.setraw(sys.stdin.fileno())
                while self.handle_key(sys.stdin.read(1)):
                    live.update(self.create_layout())
            finally:
                termios.tcsetattr(sys.stdin, termios.TCSADRAIN, old_settings)

    def _run_line_mode(self) -> None:
        """Fallback for systems without termios (Windows)."""
        self.console.print("[yellow]Warning: Advanced keyboard input not available on this system[/yellow]")
        self.console.print("Using simple input mode. Press Enter after each command.")

        while True:
            self.console.clear()
            self.console.print(self.create_layout())
            if not self.handle_key(input("\nCommand (n/p/q): ").strip()[:1]):
                break


def list_sessions_command(sessions_dir: str = "sessions") -> None:
    """List available transcript files."""
    console = Console()
    sessions = TranscriptLoader.list_sessions(sessions_dir)

    if not sessions:
        console.print(f"[yellow]No transcripts found in {sessions_dir}[/yellow]")
        return

    table = Table(title="Available Transcripts", show_header=True, header_style="bold magenta")
    table.add_column("Session ID", style="cyan")
    table.add_column("Recorded At", style="white")
    table.add_column("Duration", style="green")
    table.add_column("Interactions", style="yellow")
    table.add_column("File", style="blue")

    for session in sessions:
        duration = session.get("duration")
        duration_str = f"{duration:.2f}s" if duration else "Unknown"

        recorded_at = session.get("recorded_at") or "Unknown"
        if recorded_at != "Unknown":
            try:
                recorded_at = datetime.fromisoformat(recorded_at).strftime("%Y-%m-%d %H:%M:%S")
            except ValueError:
                pass

        table.add_row(
            session.get("session_id") or "Unknown",
            recorded_at,
            duration_str,
            str(session.get("total_interactions", 0)),
            session.get("filename", "")
        )

    console.print(table)


def main(argv=None):
    """Main entry point for the transcript replay viewer."""
    parser = argparse.ArgumentParser(description="Citadel transcript replay")
    parser.add_argument("--session", "-s", help="Transcript file to replay")
    parser.add_argument("--list", "-l", action="store_true", help="List available transcripts")
    parser.add_argument("--sessions-dir", default="sessions", help="Directory containing transcripts")

    args = parser.parse_args(argv)

    if args.list:
        list_sessions_command(args.sessions_dir)
        return 0

    console = Console()
    if not args.session:
        console.print("[red]Error: No transcript specified[/red]")
        console.print("Use --session <file> to specify a transcript")
        console.print("Use --list to see available transcripts")
        return 1

    try:
        TranscriptReplayTUI(args.session).run()
        return 0
    except KeyboardInterrupt:
        print("\nReplay interrupted by user")
        return 1


if __name__ == "__main__":
    sys.exit(main())
