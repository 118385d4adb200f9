"""
Tests for transcript recording and loading.
"""

import json
import tempfile
import time
from pathlib import Path

from src.citadel.transcript import TranscriptRecorder, TranscriptLoader


class TestTranscriptRecorder:
    """Test cases for TranscriptRecorder."""

    def setup_method(self):
        self.recorder = TranscriptRecorder("test_session")

    def test_recorder_initialization(self):
        assert self.recorder.session_id == "test_session"
        assert self.recorder.interactions == []
        assert self.recorder.start_time > 0

    def test_recorder_auto_session_id(self):
        recorder = TranscriptRecorder()
        assert recorder.session_id.startswith("session_")
        assert len(recorder.session_id) > 8

    def test_record_request(self):
        self.recorder.record_request("CFLR Test|1", "Create floor")

        interaction = self.recorder.interactions[0]
        assert interaction["type"] == "request"
        assert interaction["direction"] == "client -> server"
        assert interaction["command"] == "CFLR"
        assert interaction["line"] == "CFLR Test|1"
        assert interaction["description"] == "Create floor"
        assert "timestamp" in interaction
        assert "relative_time" in interaction

    def test_record_request_masks_password(self):
        self.recorder.record_request("PASS topsecret")
        self.recorder.record_request("CREU RobertBarta|topsecret")

        lines = [i["line"] for i in self.recorder.interactions]
        assert lines == ["PASS ****", "CREU RobertBarta|****"]

    def test_record_reply(self):
        self.recorder.record_reply("550 This command requires Aide access.")

        interaction = self.recorder.interactions[0]
        assert interaction["type"] == "reply"
        assert interaction["direction"] == "server -> client"
        assert interaction["code"] == 550
        assert interaction["line"] == "550 This command requires Aide access."

    def test_record_reply_masks_user_record_password(self):
        self.recorder.record_request("AGUP RobertBarta")
        self.recorder.record_reply("200 RobertBarta|topsecret|10768|1|0|6|4|1191255938|0")

        assert self.recorder.interactions[1]["line"] == "200 RobertBarta|****|10768|1|0|6|4|1191255938|0"
        assert "topsecret" not in json.dumps(self.recorder.interactions)

    def test_record_listing_line(self):
        self.recorder.record_reply("0|Main Floor|33")
        assert self.recorder.interactions[0]["code"] is None

    def test_record_event(self):
        details = {"host": "localhost", "port": 504}
        self.recorder.record_event("connection", "Connected to server", details)

        interaction = self.recorder.interactions[0]
        assert interaction["type"] == "event"
        assert interaction["event_type"] == "connection"
        assert interaction["details"] == details

    def test_record_event_without_details(self):
        self.recorder.record_event("disconnection", "Client disconnected")
        assert self.recorder.interactions[0]["details"] == {}

    def test_save_session(self):
        self.recorder.record_event("connection", "Connected")
        self.recorder.record_request("TIME")
        self.recorder.record_reply("200 1347625545|-14400|1|1347537300")

        with tempfile.TemporaryDirectory() as temp_dir:
            filepath = self.recorder.save_session(str(Path(temp_dir) / "nested"))

            assert Path(filepath).name == "test_session.json"
            with open(filepath, encoding="utf-8") as f:
                data = json.load(f)

        assert data["session_id"] == "test_session"
        assert data["total_interactions"] == 3
        assert data["metadata"]["protocol"] == "Citadel"
        assert data["end_time"] >= data["start_time"]
        assert len(data["interactions"]) == 3

    def test_get_session_summary(self):
        self.recorder.record_event("connection", "Connected")
        self.recorder.record_reply("200 Citadel server ready.")
        self.recorder.record_request("LFLR")
        self.recorder.record_reply("100 Known floors:")
        self.recorder.record_reply("0|Main Floor|33")
        self.recorder.record_reply("000")

        summary = self.recorder.get_session_summary()

        assert summary["session_id"] == "test_session"
        assert summary["total_interactions"] == 6
        assert summary["requests"] == 1
        assert summary["replies"] == 4
        assert summary["events"] == 1
        assert summary["commands_sent"] == ["LFLR"]
        assert summary["reply_codes"] == [200, 100, 0]


class TestTranscriptLoader:
    """Test cases for TranscriptLoader."""

    def write_session(self, directory, session_id, start_time):
        recorder = TranscriptRecorder(session_id)
        recorder.start_time = start_time
        recorder.record_request("ECHO hi")
        return recorder.save_session(directory)

    def test_load_session(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            filepath = self.write_session(temp_dir, "s1", time.time())
            data = TranscriptLoader.load_session(filepath)

        assert data["session_id"] == "s1"

    def test_get_session_interactions(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            filepath = self.write_session(temp_dir, "s1", time.time())
            interactions = TranscriptLoader.get_session_interactions(filepath)

        assert [i["command"] for i in interactions] == ["ECHO"]

    def test_list_sessions_newest_first(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            self.write_session(temp_dir, "older", 1000.0)
            self.write_session(temp_dir, "newer", 2000.0)
            (Path(temp_dir) / "broken.json").write_text("{not json")
            (Path(temp_dir) / "list.json").write_text("[1, 2]")

            sessions = TranscriptLoader.list_sessions(temp_dir)

        assert [s["session_id"] for s in sessions] == ["newer", "older"]
        assert sessions[0]["filename"] == "newer.json"

    def test_list_sessions_missing_directory(self):
        assert TranscriptLoader.list_sessions("/nonexistent/transcripts") == []
