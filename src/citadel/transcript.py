"""
Transcript recording for Citadel sessions.

This module records the command lines sent to the server, the reply lines
received and connection events, so a session can be saved and replayed later.
Passwords are masked before anything is recorded.
"""

import json
import time
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Any, Optional

from .protocol import ProtocolHandler, Reply
from .exceptions import ProtocolError


class TranscriptRecorder:
    """
    Records all client-server interactions during a Citadel session.
    """

    def __init__(self, session_id: Optional[str] = None):
        self.session_id = session_id or self._generate_session_id()
        self.interactions: List[Dict[str, Any]] = []
        self.start_time = time.time()
        self.protocol_handler = ProtocolHandler()
        self.last_command = ""

    def _generate_session_id(self) -> str:
        """Generate a unique session ID based on timestamp."""
        return f"session_{datetime.now().strftime('%Y%m%d_%H%M%S')}"

    def _timing(self) -> Dict[str, float]:
        now = time.time()
        return {"timestamp": now, "relative_time": now - self.start_time}

    def record_request(self, line: str, description: str = "") -> None:
        """
        Record a command line sent to the server.

        Args:
            line: The command line, without terminator
            description: Optional description of the request
        """
        self.last_command = self.protocol_handler.get_command_name(line)
        self.interactions.append({
            **self._timing(),
            "type": "request",
            "direction": "client -> server",
            "command": self.last_command,
            "line": self.protocol_handler.redact(line),
            "description": description,
        })

    def record_reply(self, line: str, description: str = "") -> None:
        """
        Record a reply line received from the server.

        Listing body lines are recorded as well; they carry no reply code.
        Passwords in replies to the last recorded request are masked.

        Args:
            line: The reply line, without terminator
            description: Optional description of the reply
        """
        try:
            code: Optional[int] = Reply.parse(line).code
        except ProtocolError:
            code = None

        self.interactions.append({
            **self._timing(),
            "type": "reply",
            "direction": "server -> client",
            "code": code,
            "line": self.protocol_handler.redact_reply(line, self.last_command),
            "description": description,
        })

    def record_event(self, event_type: str, description: str, details: Dict[str, Any] = None) -> None:
        """
        Record a general event (connection, disconnection, error, etc.).

        Args:
            event_type: Type of event
            description: Description of the event
            details: Additional event details
        """
        self.interactions.append({
            **self._timing(),
            "type": "event",
            "event_type": event_type,
            "description": description,
            "details": details or {},
        })

    def save_session(self, output_dir: str = "sessions") -> str:
        """
        Save the recorded transcript to a JSON file.

        Args:
            output_dir: Directory to save transcript files

        Returns:
            str: Path to the saved file
        """
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        end_time = time.time()
        session_data = {
            "session_id": self.session_id,
            "start_time": self.start_time,
            "end_time": end_time,
            "duration": end_time - self.start_time,
            "total_interactions": len(self.interactions),
            "metadata": {
                "protocol": "Citadel",
                "client_version": "1.0.0",
                "recorded_at": datetime.now().isoformat()
            },
            "interactions": self.interactions
        }

        filepath = output_path / f"{self.session_id}.json"
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(session_data, f, indent=2, ensure_ascii=False)

        return str(filepath)

    def get_session_summary(self) -> Dict[str, Any]:
        """
        Get a summary of the current transcript.

        Returns:
            Dict containing session statistics
        """
        requests = [i for i in self.interactions if i.get("type") == "request"]
        replies = [i for i in self.interactions if i.get("type") == "reply"]
        events = [i for i in self.interactions if i.get("type") == "event"]

        return {
            "session_id": self.session_id,
            "duration": time.time() - self.start_time,
            "total_interactions": len(self.interactions),
            "requests": len(requests),
            "replies": len(replies),
            "events": len(events),
            "commands_sent": [r.get("command") for r in requests],
            "reply_codes": [r.get("code") for r in replies if r.get("code") is not None]
        }


class TranscriptLoader:
    """
    Loads and provides access to recorded transcripts.
    """

    @staticmethod
    def load_session(filepath: str) -> Dict[str, Any]:
        """
        Load a transcript from a JSON file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            json.JSONDecodeError: If the file is invalid JSON
        """
        with open(filepath, 'r', encoding='utf-8') as f:
            return json.load(f)

    @staticmethod
    def list_sessions(sessions_dir: str = "sessions") -> List[Dict[str, Any]]:
        """
        List all available transcript files, newest first.

        Args:
            sessions_dir: Directory containing transcript files
        """
        sessions_path = Path(sessions_dir)
        if not sessions_path.exists():
            return []

        sessions = []
        for session_file in sessions_path.glob("*.json"):
            try:
                session_data = TranscriptLoader.load_session(str(session_file))
                sessions.append({
                    "filename": session_file.name,
                    "filepath": str(session_file),
                    "session_id": session_data.get("session_id"),
                    "start_time": session_data.get("start_time"),
                    "duration": session_data.get("duration"),
                    "total_interactions": session_data.get("total_interactions"),
                    "recorded_at": session_data.get("metadata", {}).get("recorded_at")
                })
            except (json.JSONDecodeError, AttributeError):
                # Not a transcript
                continue

        sessions.sort(key=lambda x: x.get("start_time") or 0, reverse=True)
        return sessions

    @staticmethod
    def get_session_interactions(filepath: str) -> List[Dict[str, Any]]:
        """Get the interactions of a transcript file."""
        session_data = TranscriptLoader.load_session(filepath)
        return session_data.get("interactions", [])
