#!/usr/bin/env python3
"""
Farm Keeper Agent - Keeps one farm harvested, tended and replanted.

Architecture:
1. Poll loop: every check_interval seconds run one farm check
2. Push channel: the gateway relays server pushes (lands changed, level up)
   into a queue; the agent consumes them between checks
3. Each check: fetch lands → analyze → cache snapshot → execute actions
4. Idle farms are not re-fetched: while nothing needs doing and nothing is
   about to mature, the status lines are redrawn from the cached snapshot

Usage:
    python farm_agent.py                  # Run with config/settings.yaml
    python farm_agent.py --once           # Single farm check, then exit
    python farm_agent.py --ui             # Also push status to the UI server
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Union

import yaml

from constants import (
    FERTILIZER_LOW_THRESHOLD,
    IMMINENT_MATURE_SEC,
    LOOP_START_DELAY_SEC,
    NAME_DISPLAY_WIDTH,
    NORMAL_FERTILIZER_ID,
    PER_PLOT_INTERVAL_SEC,
    PUSH_CHECK_DELAY_SEC,
    PUSH_DEBOUNCE_SEC,
    SEED_SHOP_ID,
)
from execution.farm_executor import FarmExecutor
from farm_client import FarmClient, HttpGatewayTransport, TransportError
from game_config import GameConfig
from planning.crop_advisor import CropAdvisor
from planning.land_analyzer import LandAnalyzer, lines_from_snapshot
from planning.models import FarmSnapshot, to_int
from session import FarmSession
from ui.client import UIClient
from ui.status_board import StatusBoard

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

@dataclass
class Config:
    """Configuration loaded from settings.yaml."""

    # Gateway
    gateway_url: str = "http://localhost:8800"
    request_timeout: float = 10.0

    # Timing
    check_interval: float = 10.0
    start_delay: float = LOOP_START_DELAY_SEC
    push_debounce: float = PUSH_DEBOUNCE_SEC
    push_delay: float = PUSH_CHECK_DELAY_SEC
    plant_interval: float = PER_PLOT_INTERVAL_SEC

    # Farm
    fertilizer_threshold: int = FERTILIZER_LOW_THRESHOLD
    seed_shop_id: int = SEED_SHOP_ID
    normal_fertilizer_id: int = NORMAL_FERTILIZER_ID
    name_width: int = NAME_DISPLAY_WIDTH

    # Game data
    game_data_dir: Path = Path("./data/game")

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = Path("./logs/farm.log")

    # UI
    ui_enabled: bool = False
    ui_url: str = "http://localhost:9001"
    ui_timeout: float = 3.0

    @classmethod
    def from_yaml(cls, path: str = "./config/settings.yaml") -> "Config":
        """Load config from YAML file."""
        config = cls()

        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f) or {}

            # Gateway
            if 'gateway' in data:
                config.gateway_url = data['gateway'].get('url', config.gateway_url)
                config.request_timeout = data['gateway'].get('request_timeout', config.request_timeout)

            # Timing
            if 'timing' in data:
                timing = data['timing']
                config.check_interval = timing.get('check_interval', config.check_interval)
                config.start_delay = timing.get('start_delay', config.start_delay)
                config.push_debounce = timing.get('push_debounce', config.push_debounce)
                config.push_delay = timing.get('push_delay', config.push_delay)
                config.plant_interval = timing.get('plant_interval', config.plant_interval)

            # Farm
            if 'farm' in data:
                farm = data['farm']
                config.fertilizer_threshold = farm.get('fertilizer_threshold', config.fertilizer_threshold)
                config.seed_shop_id = farm.get('seed_shop_id', config.seed_shop_id)
                config.normal_fertilizer_id = farm.get('normal_fertilizer_id', config.normal_fertilizer_id)
                config.name_width = farm.get('name_width', config.name_width)

            # Game data
            if 'game_data' in data:
                config.game_data_dir = Path(data['game_data'].get('directory', str(config.game_data_dir)))

            # Logging
            if 'logging' in data:
                config.log_level = data['logging'].get('level', config.log_level)
                log_file = data['logging'].get('log_file', config.log_file)
                config.log_file = Path(log_file) if log_file else None

            # UI
            if 'ui' in data:
                config.ui_enabled = data['ui'].get('enabled', config.ui_enabled)
                config.ui_url = data['ui'].get('url', config.ui_url)
                config.ui_timeout = data['ui'].get('timeout', config.ui_timeout)

        except FileNotFoundError:
            logging.warning(f"Config file not found: {path}, using defaults")
        except Exception as e:
            logging.error(f"Error loading config: {e}, using defaults")

        return config


# =============================================================================
# Push notifications
# =============================================================================

@dataclass
class LandsChanged:
    """Server push: these lands changed state."""
    land_ids: List[int] = field(default_factory=list)


@dataclass
class LevelChanged:
    """Server push: the player reached a new level."""
    level: int = 0


Notification = Union[LandsChanged, LevelChanged]


def notification_from_event(event: Dict[str, Any]) -> Optional[Notification]:
    """Map a relayed gateway event to a notification. Unknown types give None."""
    kind = event.get("type")
    if kind == "landsChanged":
        return LandsChanged(land_ids=[to_int(i) for i in event.get("land_ids") or []])
    if kind == "levelChanged":
        return LevelChanged(level=to_int(event.get("level")))
    return None


# =============================================================================
# Farm Agent
# =============================================================================

class FarmAgent:
    """
    Scheduling controller for one farm session.

    One farm check runs at a time. A trigger that arrives while a check is
    in flight (poll tick or push) is skipped, not queued.
    """

    def __init__(
        self,
        config: Config,
        session: FarmSession,
        client: FarmClient,
        analyzer: LandAnalyzer,
        advisor: CropAdvisor,
        executor: FarmExecutor,
        board: StatusBoard,
        monotonic: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        self.config = config
        self.session = session
        self.client = client
        self.analyzer = analyzer
        self.advisor = advisor
        self.executor = executor
        self.board = board
        self._monotonic = monotonic
        self._sleep = sleep

        self.running = False
        self._queue: "asyncio.Queue[Optional[Notification]]" = asyncio.Queue()
        self._stop_event: Optional[asyncio.Event] = None
        self._tasks: List[asyncio.Task] = []
        self._last_accepted: Dict[str, float] = {}
        self._operation_limit_observers: List[Callable[[List[Dict[str, Any]]], None]] = []

    # =========================================================================
    # Farm check
    # =========================================================================

    def add_operation_limits_observer(self, observer: Callable[[List[Dict[str, Any]]], None]) -> None:
        """Called with the operation limits of every AllLands reply."""
        self._operation_limit_observers.append(observer)

    def _forward_operation_limits(self, limits: List[Dict[str, Any]]) -> None:
        if not limits:
            return
        for observer in self._operation_limit_observers:
            try:
                observer(limits)
            except Exception as e:
                logger.warning(f"Operation limit observer failed: {e}")

    def should_check_farm_now(self) -> bool:
        """Whether this tick needs a real fetch, or the cached snapshot is still good."""
        s = self.session
        if s.is_first_check or s.force_check:
            return True
        snapshot = s.last_snapshot
        if not snapshot:
            return True
        if snapshot.needs_attention():
            return True
        if snapshot.min_remaining_sec is not None:
            elapsed = max(0, s.clock.now_sec() - snapshot.server_time_sec)
            if snapshot.min_remaining_sec - elapsed <= IMMINENT_MATURE_SEC:
                return True
        return False

    def _publish_cached_lines(self) -> None:
        lines = lines_from_snapshot(self.session.last_snapshot, self.session.clock.now_sec())
        if not lines:
            return
        update: Dict[str, Any] = {"farm_lines": lines}
        if self.session.best_seed_cache.line:
            update["best_seed_line"] = self.session.best_seed_cache.line
        self.board.update(**update)

    def publish_user(self) -> None:
        user = self.session.user
        self.board.update(name=user.name, level=user.level, gold=user.gold, exp=user.exp)

    async def check_farm(self) -> None:
        """One farm check. No-op while another check is running or before login."""
        s = self.session
        if s.is_checking or not s.logged_in:
            return
        s.is_checking = True

        try:
            if not self.should_check_farm_now():
                logger.debug("Farm idle, redrawing from cached snapshot")
                self._publish_cached_lines()
                return

            reply = await self.client.get_all_lands()
            if not reply.lands:
                logger.warning("No land data returned")
                return
            self._forward_operation_limits(reply.operation_limits)

            analysis = self.analyzer.analyze(reply.lands, s.clock.now_sec())
            s.last_snapshot = FarmSnapshot.from_analysis(analysis)
            s.last_unlocked_count = analysis.unlocked_count or s.last_unlocked_count
            cache = self.advisor.ensure_cache(s.best_seed_cache, s.user.level, s.last_unlocked_count)

            update: Dict[str, Any] = {"farm_lines": analysis.farm_lines}
            if cache and cache.line:
                update["best_seed_line"] = cache.line
            self.board.update(**update)
            s.is_first_check = False
            s.force_check = False

            report = await self.executor.execute(analysis)
            self.publish_user()
            if analysis.has_work:
                logger.info(f"[{' '.join(analysis.summary_parts())}]{report.to_log()}")
        except Exception as e:
            logger.warning(f"Farm check failed: {e}")
        finally:
            s.is_checking = False

    async def check_now(self) -> None:
        """Manual trigger: fetch and act regardless of the cached snapshot."""
        self.session.force_check = True
        await self.check_farm()

    # =========================================================================
    # Push notifications
    # =========================================================================

    def notify(self, note: Notification) -> None:
        """
        Hand a push notification to the consumer task.

        Lands pushes are filtered on arrival: dropped while a check is in
        flight and debounced per kind, so pushes that pile up behind a slow
        check never turn into extra fetches.
        """
        if isinstance(note, LandsChanged):
            if self.session.is_checking:
                logger.debug("Push ignored, farm check in flight")
                return
            if not self._accept("lands"):
                return
        self._queue.put_nowait(note)

    def _accept(self, kind: str) -> bool:
        now = self._monotonic()
        last = self._last_accepted.get(kind)
        if last is not None and now - last < self.config.push_debounce:
            return False
        self._last_accepted[kind] = now
        return True

    async def handle_notification(self, note: Notification) -> None:
        """Act on a notification already accepted by notify()."""
        if isinstance(note, LandsChanged):
            self.session.force_check = True
            logger.info(f"📬 Push: {len(note.land_ids)} lands changed, checking farm...")
            await self._sleep(self.config.push_delay)
            if not self.session.is_checking:
                await self.check_farm()
        elif isinstance(note, LevelChanged):
            if not note.level:
                return
            self.session.user.level = note.level
            if not self.session.last_unlocked_count:
                return
            cache = self.advisor.ensure_cache(
                self.session.best_seed_cache, note.level, self.session.last_unlocked_count
            )
            if cache and cache.line:
                self.board.update(level=note.level, best_seed_line=cache.line)

    async def _consume_notifications(self) -> None:
        while True:
            note = await self._queue.get()
            if note is None:
                break
            try:
                await self.handle_notification(note)
            except Exception as e:
                logger.warning(f"Push handling failed: {e}")

    async def pump_events(self, events: AsyncIterator[Dict[str, Any]]) -> None:
        """Feed relayed gateway events into the notification queue until the stream ends."""
        try:
            async for event in events:
                note = notification_from_event(event)
                if note is not None:
                    self.notify(note)
        except TransportError as e:
            logger.warning(f"Push stream closed: {e}")

    # =========================================================================
    # Loop control
    # =========================================================================

    async def _wait(self, seconds: float) -> bool:
        """Sleep unless stopped first. Returns True once stopped."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
        return not self.running

    async def _poll_loop(self) -> None:
        if await self._wait(self.config.start_delay):
            return
        while self.running:
            await self.check_farm()
            if await self._wait(self.config.check_interval):
                break

    def start_loop(self) -> None:
        """Start polling and push consumption. Must be called from a running event loop."""
        if self.running:
            return
        self.running = True
        self._stop_event = asyncio.Event()
        self._tasks = [
            asyncio.create_task(self._poll_loop()),
            asyncio.create_task(self._consume_notifications()),
        ]
        logger.info(f"Farm loop started (every {self.config.check_interval}s)")

    def stop_loop(self) -> None:
        """Stop scheduling new checks. A check already running finishes on its own."""
        if not self.running:
            return
        self.running = False
        if self._stop_event:
            self._stop_event.set()
        self._queue.put_nowait(None)
        logger.info("Farm loop stopped")

    async def wait_stopped(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks)
            self._tasks = []


# =============================================================================
# Main
# =============================================================================

def setup_logging(level: str, log_file: Optional[Path]) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    # Force reconfigure logging (libraries may have already configured it)
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
        force=True,
    )


def build_agent(config: Config, session: FarmSession, client: FarmClient,
                game_config: GameConfig, ui: Optional[UIClient] = None) -> FarmAgent:
    advisor = CropAdvisor(game_config)
    executor = FarmExecutor(
        client,
        session,
        advisor,
        game_config,
        plant_interval=config.plant_interval,
        fertilizer_threshold=config.fertilizer_threshold,
        fertilizer_id=config.normal_fertilizer_id,
        seed_shop_id=config.seed_shop_id,
    )
    return FarmAgent(
        config,
        session,
        client,
        LandAnalyzer(game_config, name_width=config.name_width),
        advisor,
        executor,
        StatusBoard(game_config, ui),
    )


async def run_agent(config: Config, once: bool = False) -> None:
    game_config = GameConfig.load(str(config.game_data_dir))
    session = FarmSession()
    transport = HttpGatewayTransport(config.gateway_url, timeout=config.request_timeout)
    client = FarmClient(transport, session)

    ui = None
    if config.ui_enabled:
        ui = UIClient(config.ui_url, timeout=config.ui_timeout)
        logger.info(f"UI connected: {config.ui_url}")

    agent = build_agent(config, session, client, game_config, ui)
    pump: Optional[asyncio.Task] = None
    try:
        try:
            session.apply_user_info(await transport.fetch_session())
        except TransportError as e:
            logger.error(f"Gateway not ready: {e}")
            return
        if not session.logged_in:
            logger.error("Gateway has no logged-in player")
            return
        logger.info(f"Player {session.user.name} (gid {session.user.gid}) Lv{session.user.level}")
        agent.publish_user()

        if once:
            await agent.check_now()
            return

        agent.start_loop()
        pump = asyncio.create_task(agent.pump_events(transport.events()))
        await agent.wait_stopped()
    finally:
        agent.stop_loop()
        if pump:
            pump.cancel()
        await transport.close()
        if ui:
            ui.close()


def main():
    import argparse

    parser = argparse.ArgumentParser(description="Farm keeper agent")
    parser.add_argument("--config", "-c", default="./config/settings.yaml",
                        help="Path to config file")
    parser.add_argument("--log-level", default=None,
                        help="Override log level (DEBUG, INFO, WARNING)")
    parser.add_argument("--ui", action="store_true",
                        help="Enable UI updates")
    parser.add_argument("--ui-url", default=None,
                        help="UI base URL (default http://localhost:9001)")
    parser.add_argument("--once", action="store_true",
                        help="Run a single farm check and exit")
    args = parser.parse_args()

    # Load config
    config = Config.from_yaml(args.config)
    if args.log_level:
        config.log_level = args.log_level
    if args.ui:
        config.ui_enabled = True
    if args.ui_url:
        config.ui_url = args.ui_url

    setup_logging(config.log_level, config.log_file)

    print("\n" + "=" * 60)
    print("   🌱 Farm Keeper")
    print("=" * 60)
    print(f"   Gateway: {config.gateway_url}")
    print(f"   Check interval: {config.check_interval}s")
    print(f"   Mode: {'single check' if args.once else 'loop'}")
    print("   Press Ctrl+C to stop")
    print("=" * 60 + "\n")

    try:
        asyncio.run(run_agent(config, once=args.once))
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    main()
