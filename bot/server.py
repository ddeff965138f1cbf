"""
bot/server.py - FastAPI front end for the ladder bot.

Endpoints:
    POST   /channels/{id}/commands    Run a structured command
    POST   /channels/{id}/messages    Run a raw chat message ("!challenge <@123>")
    GET    /channels                  List initialized channels
    GET    /channels/{id}/standings   Current standings
    GET    /channels/{id}/challenges  Open challenges
    GET    /channels/{id}/history     Recent results (?limit=)
    GET    /channels/{id}/snapshot    Raw channel document
    GET    /health                    Server health check

Ladder errors map onto HTTP statuses; the detail is the user-facing message.
"""

import logging
import threading
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ladder.chat import parse_message
from ladder.commands import CommandDispatcher, CommandReply, parse_command
from ladder.config import LadderConfig, load_config
from ladder.errors import (
    AlreadyExistsError,
    InvalidArgumentError,
    LadderError,
    NotFoundError,
    PermissionDeniedError,
    StateConflictError,
)
from ladder.registry import ChannelRegistry

from .db import LadderDB

logger = logging.getLogger(__name__)

# Global state, set during lifespan
_db: LadderDB | None = None
_registry: ChannelRegistry | None = None
_dispatcher: CommandDispatcher | None = None
_command_prefix = "!"

# Snapshot + write must happen as one step so an older snapshot never lands last
_persist_lock = threading.Lock()


def get_db() -> LadderDB:
    assert _db is not None, "DB not initialized"
    return _db


def get_registry() -> ChannelRegistry:
    assert _registry is not None, "Registry not initialized"
    return _registry


def get_dispatcher() -> CommandDispatcher:
    assert _dispatcher is not None, "Dispatcher not initialized"
    return _dispatcher


def setup(db: LadderDB, config: LadderConfig) -> ChannelRegistry:
    """Build the registry from the store and install it as the server's state."""
    global _db, _registry, _dispatcher, _command_prefix
    registry = ChannelRegistry(
        default_mode=config.defaults.challenge_mode,
        default_timeout=config.defaults.challenge_timeout,
    )
    registry.load(db.load_all())
    _db = db
    _registry = registry
    _dispatcher = CommandDispatcher(registry)
    _command_prefix = config.command_prefix
    return registry


def teardown() -> None:
    global _db, _registry, _dispatcher
    _db = None
    _registry = None
    _dispatcher = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = getattr(app.state, "config", None) or load_config().apply_env()
    db = LadderDB(config.db_path)
    registry = setup(db, config)
    logger.info(f"Ladder DB initialized: {config.db_path} ({len(registry)} channel(s))")
    _log_startup_config(config)

    yield
    teardown()
    db.close()


def _log_startup_config(config: LadderConfig) -> None:
    """Log configuration on startup so operators can verify it."""
    logger.info("=" * 50)
    logger.info("Ladder bot startup config:")
    logger.info(f"  Store: {config.db_path}")
    logger.info(f"  Default mode: {config.defaults.challenge_mode}")
    logger.info(f"  Default timeout: {config.defaults.challenge_timeout_days} days")
    logger.info(f"  Chat prefix: {config.command_prefix}")
    logger.info("=" * 50)


def persist() -> int:
    """Write every channel to the store. Returns the channel count."""
    with _persist_lock:
        count = get_db().replace_all(get_registry().snapshots())
    logger.debug(f"Saved {count} channel(s)")
    return count


# ======================================================================
# Error mapping
# ======================================================================

ERROR_STATUS = [
    (NotFoundError, 404),
    (AlreadyExistsError, 409),
    (InvalidArgumentError, 400),
    (PermissionDeniedError, 403),
    (StateConflictError, 409),
]


def status_for(error: LadderError) -> int:
    for cls, status in ERROR_STATUS:
        if isinstance(error, cls):
            return status
    return 400


async def ladder_error_handler(request: Request, exc: LadderError) -> JSONResponse:
    return JSONResponse(status_code=status_for(exc), content={"detail": str(exc)})


app = FastAPI(title="Ladder Bot", lifespan=lifespan)
app.add_exception_handler(LadderError, ladder_error_handler)


# ======================================================================
# Request/Response Models
# ======================================================================


class CommandRequest(BaseModel):
    caller: str
    command: dict[str, Any]


class MessageRequest(BaseModel):
    author: str
    content: str


class ReplyResponse(BaseModel):
    handled: bool = True
    content: str | None = None
    mutated: bool = False
    quiet: bool = False


class HealthResponse(BaseModel):
    status: str
    channels: int
    stored_channels: int


# ======================================================================
# Endpoints
# ======================================================================


def _run(channel_id: str, caller: str, command) -> dict[str, Any]:
    reply: CommandReply = get_dispatcher().dispatch(channel_id, caller, command)
    if reply.mutated:
        persist()
    return {
        "handled": True,
        "content": reply.content,
        "mutated": reply.mutated,
        "quiet": reply.quiet,
    }


@app.post("/channels/{channel_id}/commands", response_model=ReplyResponse)
def run_command(channel_id: str, req: CommandRequest) -> dict[str, Any]:
    """Run one structured command in a channel."""
    command = parse_command(req.command)
    return _run(channel_id, req.caller, command)


@app.post("/channels/{channel_id}/messages", response_model=ReplyResponse)
def run_message(channel_id: str, req: MessageRequest) -> dict[str, Any]:
    """Run a chat message. Messages without the command prefix are ignored."""
    command = parse_message(req.content, prefix=_command_prefix)
    if command is None:
        return {"handled": False}
    return _run(channel_id, req.author, command)


@app.get("/channels")
def list_channels() -> dict[str, Any]:
    return {"channels": sorted(get_registry().channel_ids())}


@app.get("/channels/{channel_id}/standings")
def get_standings(channel_id: str) -> dict[str, Any]:
    engine = get_registry().get(channel_id)
    return {
        "channel_id": channel_id,
        "challenge_mode": engine.settings().mode,
        "standings": [
            {
                "position": row.position,
                "player_id": row.identity,
                "display_name": row.display_name,
                "status": row.status,
                "tier": row.tier,
                "opponent": row.opponent,
                "notes": row.notes,
            }
            for row in engine.standings()
        ],
    }


@app.get("/channels/{channel_id}/challenges")
def get_challenges(channel_id: str) -> dict[str, Any]:
    engine = get_registry().get(channel_id)
    return {
        "channel_id": channel_id,
        "challenges": [c.to_dict() for c in engine.active_challenges()],
    }


@app.get("/channels/{channel_id}/history")
def get_history(channel_id: str, limit: int = Query(10, ge=1, le=100)) -> dict[str, Any]:
    engine = get_registry().get(channel_id)
    return {
        "channel_id": channel_id,
        "results": [r.to_dict() for r in engine.history(limit)],
    }


@app.get("/channels/{channel_id}/snapshot")
def get_snapshot(channel_id: str) -> dict[str, Any]:
    return get_registry().get(channel_id).snapshot()


@app.get("/health", response_model=HealthResponse)
def health() -> dict[str, Any]:
    """Server health check."""
    return {
        "status": "ok",
        "channels": len(get_registry()),
        "stored_channels": get_db().channel_count(),
    }
