"""
bot - HTTP front end for the ladder bot

Accepts typed commands or raw chat messages per channel, runs them through
the ladder engine and persists every channel to SQLite after a change.
"""

from .server import app
from .db import LadderDB

__all__ = ["app", "LadderDB"]
