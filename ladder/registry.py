"""
ladder/registry.py - Channel id -> LadderEngine map.

The registry lock covers only create/remove/lookup/listing and is never
held while an engine lock is taken. Callers look an engine up, release the
registry, then operate on the engine.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Iterable

from .challenges import normalize_mode, utcnow
from .engine import DEFAULT_MODE, DEFAULT_TIMEOUT, LadderEngine
from .errors import AlreadyExistsError, NotFoundError

logger = logging.getLogger(__name__)


class ChannelRegistry:
    """Owns every LadderEngine in the process."""

    def __init__(
        self,
        default_mode: str = DEFAULT_MODE,
        default_timeout: timedelta = DEFAULT_TIMEOUT,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.default_mode = normalize_mode(default_mode)
        self.default_timeout = default_timeout
        self._clock = clock
        self._channels: dict[str, LadderEngine] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._channels)

    def __contains__(self, channel_id: str) -> bool:
        with self._lock:
            return channel_id in self._channels

    def add_channel(self, channel_id: str, creator: str) -> LadderEngine:
        """Create a channel with default settings and the creator as sole admin."""
        with self._lock:
            if channel_id in self._channels:
                raise AlreadyExistsError(
                    "Channel already initialized. If you'd like to reset, "
                    "delete the tournament and then init again."
                )
            engine = LadderEngine(
                channel_id,
                mode=self.default_mode,
                timeout=self.default_timeout,
                admins=[creator],
                clock=self._clock,
            )
            self._channels[channel_id] = engine
        logger.info(f"Channel {channel_id} initialized by {creator}")
        return engine

    def remove_channel(self, channel_id: str) -> None:
        with self._lock:
            if self._channels.pop(channel_id, None) is None:
                raise NotFoundError("Channel not found")
        logger.info(f"Channel {channel_id} deleted")

    def find(self, channel_id: str) -> LadderEngine | None:
        with self._lock:
            return self._channels.get(channel_id)

    def get(self, channel_id: str) -> LadderEngine:
        engine = self.find(channel_id)
        if engine is None:
            raise NotFoundError(
                "This channel has no ladder yet. Use init to start one."
            )
        return engine

    def channel_ids(self) -> list[str]:
        with self._lock:
            return list(self._channels)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def snapshots(self) -> list[dict]:
        """Snapshot every channel. Each engine is locked only while it is copied."""
        with self._lock:
            engines = list(self._channels.values())
        return [engine.snapshot() for engine in engines]

    def load(self, snapshots: Iterable[dict]) -> int:
        """Replace the channel table with engines rebuilt from snapshots."""
        channels = {}
        for data in snapshots:
            engine = LadderEngine.from_snapshot(data, clock=self._clock)
            if engine.channel_id in channels:
                logger.warning(f"Skipping duplicate channel {engine.channel_id}")
                continue
            channels[engine.channel_id] = engine
        with self._lock:
            self._channels = channels
        logger.info(f"Loaded {len(channels)} channel(s)")
        return len(channels)
