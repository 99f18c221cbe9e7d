"""Core configuration, logging and identity helpers."""

from .config import Settings, settings
from .log_config import configure_logging
from .security import decode_identity_token

__all__ = [
    "Settings",
    "settings",
    "configure_logging",
    "decode_identity_token",
]
