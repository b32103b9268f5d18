import os
from pathlib import Path

from .constants import DEFAULT_HOST, DEFAULT_PORT


def get_save_path() -> Path:
    path = os.getenv("HEXVOID_SAVE_PATH")
    if path:
        return Path(path)
    return Path.home() / ".hexvoid" / "galaxy.json"


def get_host() -> str:
    return os.getenv("HEXVOID_HOST", DEFAULT_HOST)


def get_port() -> int:
    port = os.getenv("HEXVOID_PORT")
    if port:
        return int(port)
    return DEFAULT_PORT
