"""
Connection settings for Citadel sessions.

Settings come from keyword arguments or from the environment:

- CITADEL_HOST: Server hostname or IP (default: localhost)
- CITADEL_PORT: Server port (default: 504)
- CITADEL_TIMEOUT: Socket timeout in seconds (default: 10.0)
- CITADEL_RECORD: Record a transcript when set to 1/true/yes
- CITADEL_SESSIONS_DIR: Directory for transcripts (default: sessions)
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .protocol import CITADEL_PORT


DEFAULT_HOST = "localhost"
DEFAULT_TIMEOUT = 10.0
DEFAULT_SESSIONS_DIR = "sessions"

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass
class SessionConfig:
    host: str = DEFAULT_HOST
    port: int = CITADEL_PORT
    timeout: Optional[float] = DEFAULT_TIMEOUT
    record_session: bool = False
    sessions_dir: str = DEFAULT_SESSIONS_DIR

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SessionConfig":
        """
        Build a configuration from environment variables.

        Raises:
            ValueError: If CITADEL_PORT or CITADEL_TIMEOUT is not a number
        """
        env = os.environ if environ is None else environ

        port_str = env.get("CITADEL_PORT")
        timeout_str = env.get("CITADEL_TIMEOUT")
        try:
            port = int(port_str) if port_str else CITADEL_PORT
        except ValueError:
            raise ValueError(f"CITADEL_PORT must be an integer, got: {port_str}")
        try:
            timeout = float(timeout_str) if timeout_str else DEFAULT_TIMEOUT
        except ValueError:
            raise ValueError(f"CITADEL_TIMEOUT must be a number, got: {timeout_str}")

        return cls(
            host=env.get("CITADEL_HOST") or DEFAULT_HOST,
            port=port,
            timeout=timeout,
            record_session=env.get("CITADEL_RECORD", "").lower() in _TRUE_VALUES,
            sessions_dir=env.get("CITADEL_SESSIONS_DIR") or DEFAULT_SESSIONS_DIR,
        )
