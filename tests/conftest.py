import numpy as np
import pytest

from childbrain import (
    Agent, AgentConfig, AssociativeMemory, EventPatternAnalyzer, EvolutionLedger,
    ManualClock, SurvivalCore,
)

START_MS = 1_700_000_000_000


@pytest.fixture
def clock():
    return ManualClock(START_MS)


@pytest.fixture
def rng():
    return np.random.default_rng(7)


@pytest.fixture
def core(clock, rng):
    return SurvivalCore(clock=clock, rng=rng)


@pytest.fixture
def memory(clock):
    return AssociativeMemory(clock=clock)


@pytest.fixture
def analyzer(clock):
    return EventPatternAnalyzer(clock=clock)


@pytest.fixture
def ledger():
    return EvolutionLedger()


@pytest.fixture
def agent(clock, rng):
    return Agent(config=AgentConfig(), clock=clock, rng=rng)
