"""
Shared fixtures: a scripted socket standing in for a Citadel server.
"""

from unittest.mock import patch

import pytest

from src.citadel.session import CitadelSession


BANNER = "200 test.example.com Citadel server ready."


class MockSocket:
    """Mock socket that replays scripted server output."""

    def __init__(self):
        self.sent_data = []
        self.receive_data = []
        self.receive_index = 0
        self.connected = False
        self.closed = False
        self.timeout = None
        self.address = None
        self.should_raise_on_connect = None
        self.should_raise_on_send = None
        self.should_raise_on_recv = None

    def connect(self, address):
        if self.should_raise_on_connect:
            raise self.should_raise_on_connect
        self.address = address
        self.connected = True

    def settimeout(self, timeout):
        self.timeout = timeout

    def sendall(self, data):
        if self.should_raise_on_send:
            raise self.should_raise_on_send
        self.sent_data.append(data)

    def recv(self, size):
        if self.should_raise_on_recv:
            raise self.should_raise_on_recv

        if self.receive_index >= len(self.receive_data):
            return b""  # Server closed the connection

        data = self.receive_data[self.receive_index]
        self.receive_index += 1

        if isinstance(data, Exception):
            raise data
        return data

    def close(self):
        self.connected = False
        self.closed = True

    def add_reply(self, *lines):
        """Queue reply lines, delivered together in one chunk."""
        self.receive_data.append("".join(f"{line}\n" for line in lines).encode("utf-8"))

    def add_raw(self, data):
        """Queue a raw chunk or an exception to raise from recv."""
        self.receive_data.append(data)

    @property
    def sent_lines(self):
        return [data.decode("utf-8").rstrip("\n") for data in self.sent_data]


@pytest.fixture
def mock_socket():
    sock = MockSocket()
    sock.add_reply(BANNER)
    return sock


@pytest.fixture
def session(mock_socket):
    """A session connected to the mock socket, banner already consumed."""
    with patch('socket.socket', return_value=mock_socket):
        citadel = CitadelSession("test.example.com", 504, timeout=1.0)
        yield citadel
        citadel.close()
