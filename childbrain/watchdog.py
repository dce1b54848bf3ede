"""
Survival Watchdog

Keeps the agent's heart beating from a background thread:
- calls agent.tick() every tick_interval seconds
- health check: low-power mode (slower ticks) while energy is critical
- periodic backup through the agent's persistence

A failing tick or backup is logged; the loop keeps running.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

from .clock import SECOND_MS
from .config import WatchdogConfig

if TYPE_CHECKING:
    from .agent import Agent
    from .persistence import AgentPersistence

logger = logging.getLogger(__name__)


@dataclass
class WatchdogStatus:
    running: bool
    low_power: bool
    ticks: int
    failed_ticks: int
    backups: int
    deaths: int
    current_interval: float


class Watchdog:
    def __init__(
        self,
        agent: 'Agent',
        config: Optional[WatchdogConfig] = None,
        persistence: Optional['AgentPersistence'] = None,
    ):
        self.agent = agent
        self.config = config or agent.config.watchdog
        self.persistence = persistence if persistence is not None else agent.persistence

        self.low_power = False
        self.ticks = 0
        self.failed_ticks = 0
        self.backups = 0
        self.deaths = 0
        self._last_backup: int = agent.clock()

        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()

    @property
    def current_interval(self) -> float:
        if self.low_power:
            return self.config.tick_interval * self.config.low_power_multiplier
        return self.config.tick_interval

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # =========================================================================
    # LOOP
    # =========================================================================

    def start(self) -> None:
        if self.is_running:
            return
        logger.info("Starting survival watchdog (every %.1fs)", self.config.tick_interval)
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="childbrain-watchdog", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.info("Survival watchdog stopped")

    def _loop(self) -> None:
        while not self._stop.is_set():
            self.run_once()
            self._stop.wait(timeout=self.current_interval)

    def run_once(self) -> None:
        """One synchronous iteration: tick, health check, maybe backup."""
        try:
            state = self.agent.tick()
        except Exception:
            self.failed_ticks += 1
            logger.exception("Tick failed")
            return

        self.ticks += 1
        if state.just_died:
            self.deaths += 1
        self._health_check()
        self._maybe_backup()

    # =========================================================================
    # HEALTH
    # =========================================================================

    def _health_check(self) -> None:
        state = self.agent.get_current_state()
        logger.debug("Health: energy=%.1f integrity=%.1f stability=%.1f",
                     state.energy, state.integrity, state.stability)

        if state.energy < self.config.low_power_energy:
            self.enter_low_power_mode()
        else:
            self.exit_low_power_mode()

    def enter_low_power_mode(self) -> None:
        if self.low_power:
            return
        self.low_power = True
        logger.warning("Entering low power mode (tick every %.1fs)", self.current_interval)

    def exit_low_power_mode(self) -> None:
        if not self.low_power:
            return
        self.low_power = False
        logger.info("Exiting low power mode")

    def _maybe_backup(self) -> None:
        if self.persistence is None:
            return
        now = self.agent.clock()
        if now - self._last_backup < self.config.backup_interval * SECOND_MS:
            return
        self._last_backup = now
        logger.debug("Performing periodic state backup")
        if self.persistence.save_snapshot(self.agent):
            self.backups += 1

    def get_status(self) -> WatchdogStatus:
        return WatchdogStatus(
            running=self.is_running,
            low_power=self.low_power,
            ticks=self.ticks,
            failed_ticks=self.failed_ticks,
            backups=self.backups,
            deaths=self.deaths,
            current_interval=self.current_interval,
        )
