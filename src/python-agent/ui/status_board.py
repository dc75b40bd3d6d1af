"""Status board - the data behind the terminal status bar.

Farm checks push partial updates (farm lines, best seed line, player
numbers). Only fields that actually changed are applied; when something
changed the board re-renders its lines and, if a UI server is configured,
forwards the changed fields there.
"""

import logging
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional

from game_config import GameConfig
from .client import UIClient

logger = logging.getLogger(__name__)

SEPARATOR_WIDTH = 80


@dataclass
class StatusData:
    platform: str = "qq"
    name: str = ""
    level: int = 0
    gold: int = 0
    exp: int = 0
    farm_lines: List[str] = field(default_factory=list)
    best_seed_line: str = ""


_FIELD_NAMES = {f.name for f in fields(StatusData)}


class StatusBoard:
    """Holds the status bar data and applies partial updates."""

    def __init__(self, game_config: Optional[GameConfig] = None, ui_client: Optional[UIClient] = None):
        self.data = StatusData()
        self.game_config = game_config
        self.ui_client = ui_client
        self.render_count = 0

    def update(self, **changes: Any) -> bool:
        """Apply the given fields; returns True if anything changed."""
        changed: Dict[str, Any] = {}
        for key, value in changes.items():
            if key not in _FIELD_NAMES:
                logger.debug(f"Ignoring unknown status field: {key}")
                continue
            if getattr(self.data, key) != value:
                setattr(self.data, key, value)
                changed[key] = value
        if not changed:
            return False

        self.render_count += 1
        for line in self.render_lines():
            logger.debug(f"[status] {line}")
        self._forward(changed)
        return True

    def _forward(self, changed: Dict[str, Any]) -> None:
        if not self.ui_client:
            return
        try:
            self.ui_client.update_status(**changed)
        except Exception as e:
            logger.warning(f"UI status update failed: {e}")

    def _exp_text(self) -> str:
        level, exp = self.data.level, self.data.exp
        if level <= 0 or exp < 0:
            return ""
        if self.game_config and self.game_config.level_exp_table:
            current, needed = self.game_config.level_exp_progress(level, exp)
            return f"Exp:{current}/{needed}"
        return f"Exp:{exp}"

    def render_lines(self) -> List[str]:
        """Header, separator, best seed line and farm lines, top to bottom."""
        d = self.data
        platform = "WeChat" if d.platform == "wx" else "QQ"
        parts = [platform, d.name or "not logged in", f"Lv{d.level}", f"Gold:{d.gold}"]
        exp_text = self._exp_text()
        if exp_text:
            parts.append(exp_text)
        lines = [" | ".join(parts), "─" * SEPARATOR_WIDTH]
        if d.best_seed_line:
            lines.append(d.best_seed_line)
        lines.extend(d.farm_lines)
        return lines

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self.data)
