"""
Client settings, read from ``DEPOT_*`` environment variables or ``.env``.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings


class ClientSettings(BaseSettings):
    API_URL: str = "http://localhost:8000/api"
    TIMEOUT: float = 10.0
    # Where FileTokenStore keeps the session between runs
    SESSION_FILE: Path = Path.home() / ".depot" / "session.json"

    model_config = {
        "env_prefix": "DEPOT_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }
