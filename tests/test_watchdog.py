import threading

import pytest

from childbrain import (
    Agent, AgentConfig, AgentPersistence, InMemorySnapshotStore, Watchdog, WatchdogConfig,
)


def test_run_once_ticks_the_agent(agent):
    watchdog = Watchdog(agent)
    watchdog.run_once()
    watchdog.run_once()
    assert agent.tick_count == 2
    assert watchdog.get_status().ticks == 2


def test_low_power_mode_follows_energy(agent):
    watchdog = Watchdog(agent, WatchdogConfig(tick_interval=1.0, low_power_multiplier=4.0))

    agent.core.energy = 5
    watchdog.run_once()
    assert watchdog.low_power
    assert watchdog.current_interval == 4.0

    agent.core.energy = 50
    watchdog.run_once()
    assert not watchdog.low_power
    assert watchdog.current_interval == 1.0


def test_periodic_backup(agent, clock):
    persistence = AgentPersistence(InMemorySnapshotStore())
    watchdog = Watchdog(agent, WatchdogConfig(backup_interval=60), persistence=persistence)

    watchdog.run_once()
    assert watchdog.backups == 0

    clock.advance_seconds(60)
    watchdog.run_once()
    assert watchdog.backups == 1
    assert "evolution" in persistence.store.keys()


def test_failing_tick_does_not_stop_the_loop(agent, monkeypatch):
    watchdog = Watchdog(agent)

    def explode():
        raise RuntimeError("sensor glitch")

    monkeypatch.setattr(agent, "tick", explode)
    watchdog.run_once()
    assert watchdog.failed_ticks == 1

    monkeypatch.undo()
    watchdog.run_once()
    assert watchdog.ticks == 1


def test_deaths_are_counted(clock, rng):
    config = AgentConfig().apply_overrides(survival__energy_drain=60.0)
    agent = Agent(config=config, clock=clock, rng=rng)
    watchdog = Watchdog(agent)
    for _ in range(3):
        clock.advance(10_001)
        watchdog.run_once()
    assert watchdog.deaths == 1
    assert agent.get_current_state().generation == 2


def test_background_thread(agent):
    watchdog = Watchdog(agent, WatchdogConfig(tick_interval=0.01))
    ticked = threading.Event()
    original_tick = agent.tick

    def tick():
        state = original_tick()
        ticked.set()
        return state

    agent.tick = tick
    watchdog.start()
    try:
        assert ticked.wait(timeout=5.0)
        assert watchdog.get_status().running
    finally:
        watchdog.stop()

    assert not watchdog.is_running
    assert watchdog.ticks >= 1


def test_start_is_idempotent(agent):
    watchdog = Watchdog(agent, WatchdogConfig(tick_interval=0.05))
    watchdog.start()
    thread = watchdog._thread
    watchdog.start()
    assert watchdog._thread is thread
    watchdog.stop()


@pytest.mark.parametrize("energy, expected", [(9.9, True), (10.0, False)])
def test_low_power_threshold(agent, energy, expected):
    watchdog = Watchdog(agent)
    agent.core.energy = energy
    watchdog.run_once()
    assert watchdog.low_power is expected
