"""
Farm Session - all mutable state of one farm keeper instance.

One session manages exactly one player's farm. The scheduler, executor and
status projection all receive the session by reference; nothing is kept in
module globals, so several isolated sessions can live in one process (tests
do this constantly).
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from planning.models import BestSeedCache, FarmSnapshot, to_int


class ServerClock:
    """Server time derived from the local clock plus the offset seen at login."""

    def __init__(self, now_fn: Callable[[], float] = time.time):
        self._now_fn = now_fn
        self._offset_sec = 0.0

    def sync(self, server_time_ms: int) -> None:
        """Record a server timestamp (milliseconds) from a login or heartbeat reply."""
        server_ms = to_int(server_time_ms)
        if server_ms > 0:
            self._offset_sec = server_ms / 1000 - self._now_fn()

    def now_sec(self) -> int:
        return int(self._now_fn() + self._offset_sec)


@dataclass
class UserState:
    """Player fields the farm keeper reads and updates."""
    gid: int = 0
    name: str = ""
    level: int = 0
    gold: int = 0
    exp: int = 0


@dataclass
class FarmSession:
    """Everything that changes while the farm keeper runs."""
    user: UserState = field(default_factory=UserState)
    clock: ServerClock = field(default_factory=ServerClock)

    # Scheduler state
    is_checking: bool = False
    is_first_check: bool = True
    force_check: bool = False
    last_snapshot: Optional[FarmSnapshot] = None
    last_unlocked_count: int = 0

    # Best seed for the current level / land count
    best_seed_cache: BestSeedCache = field(default_factory=BestSeedCache)

    @property
    def logged_in(self) -> bool:
        return bool(self.user.gid)

    def apply_user_info(self, data: Dict[str, Any]) -> None:
        """Take player fields and server time from a login/session reply. Missing fields are kept."""
        user = self.user
        user.gid = to_int(data.get("gid"), user.gid)
        user.name = str(data.get("name") or user.name)
        user.level = to_int(data.get("level"), user.level)
        user.gold = to_int(data.get("gold"), user.gold)
        user.exp = to_int(data.get("exp"), user.exp)
        if data.get("server_time_ms"):
            self.clock.sync(data["server_time_ms"])
