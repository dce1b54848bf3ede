import math

import numpy as np
import pytest

from childbrain import (
    EvolutionTraits, ExpressionType, GeneticMemory, InteractionType, ReactionType,
    SurvivalConfig, SurvivalCore,
)
from childbrain.survival_core import PRIMITIVE_SOUNDS

DRAIN_STEP_MS = 10_001


def fast_core(clock, rng, **kwargs):
    return SurvivalCore(config=SurvivalConfig(**kwargs), clock=clock, rng=rng)


# =============================================================================
# METABOLISM
# =============================================================================

def test_newborn_state(core):
    state = core.get_current_state()
    assert state.is_alive
    assert (state.energy, state.integrity, state.stability) == (100, 100, 100)
    assert state.curiosity == 80
    assert state.generation == 1
    assert state.cause_of_death is None


def test_drain_happens_at_most_once_per_interval(core, clock):
    for _ in range(50):
        core.tick()
    assert core.energy == 100

    clock.advance(DRAIN_STEP_MS)
    core.tick()
    core.tick()
    assert core.energy == pytest.approx(99.9)
    assert core.hunger == pytest.approx(0.1)


def test_loneliness_grows_without_interaction(core, clock):
    clock.advance(61_000)
    core.tick()
    assert core.loneliness == pytest.approx(0.1)
    assert core.comfort == pytest.approx(49.95)


def test_stimulus_resets_loneliness_timer(core, clock):
    clock.advance(55_000)
    core.process_stimulus("sound", "voice", 0.2)
    clock.advance(DRAIN_STEP_MS)
    core.tick()
    assert core.loneliness == 0


def test_instability_drains_stability_while_afraid(core, clock):
    core.fear = 60
    clock.advance(DRAIN_STEP_MS)
    core.tick()
    assert core.stability == pytest.approx(99.9)


def test_drives_drift_only_once_per_drain_interval(core, clock):
    core.fear = 60
    clock.advance(5_000)
    core.tick()
    assert core.stability == 100

    clock.advance(61_000)
    core.tick()
    core.tick()
    assert core.stability == pytest.approx(99.9)
    assert core.loneliness == pytest.approx(0.1)

    clock.advance(5_000)
    core.tick()
    assert core.loneliness == pytest.approx(0.1)


def test_resources_stay_bounded_and_death_reported_once(clock, rng):
    core = fast_core(clock, rng, energy_drain=7.0)
    deaths = 0
    steps = np.random.default_rng(3)
    for i in range(200):
        clock.advance(int(steps.integers(0, 25_000)))
        if i % 7 == 0:
            core.process_entity_interaction("stranger", InteractionType.HARM)
        state = core.tick()
        for value in (state.energy, state.integrity, state.stability):
            assert 0 <= value <= 100
        deaths += state.just_died

    assert deaths == 1
    assert not core.is_alive


def test_energy_depletion_is_terminal(clock, rng):
    core = fast_core(clock, rng, energy_drain=25.0)
    states = []
    for _ in range(4):
        clock.advance(DRAIN_STEP_MS)
        states.append(core.tick())

    final = states[-1]
    assert not final.is_alive
    assert final.just_died
    assert final.cause_of_death == "energy_depletion"
    assert all(s.is_alive for s in states[:-1])

    frozen = core.get_current_state()
    clock.advance(DRAIN_STEP_MS * 10)
    again = core.tick()
    assert not again.just_died
    assert again.energy == frozen.energy
    assert again.existence_time == frozen.existence_time


def test_death_cause_order(core):
    core.integrity = 0
    core.stability = 0
    state = core.tick()
    assert state.cause_of_death == "integrity_failure"


def test_dead_core_ignores_stimuli(core):
    core.stability = 0
    core.tick()
    response = core.process_stimulus("touch", "hold", 0.8)
    assert response.reaction is ReactionType.NEUTRAL
    assert response.rejected


# =============================================================================
# STIMULI AND LEARNING
# =============================================================================

def test_unknown_stimulus_then_learned_pleasure(core):
    first = core.process_stimulus("touch", "hold", 0.8)
    assert first.reaction is ReactionType.CURIOUS
    assert core.last_unknown_stimulus == "touch:hold"

    core.learn_from_outcome("touch:hold", True, 20)
    second = core.process_stimulus("touch", "hold", 0.8)
    assert second.reaction is ReactionType.PLEASURE
    assert second.intensity == 20


def test_exploration_costs_energy(core):
    core.process_stimulus("light", "flash", 0.1)
    assert core.energy == pytest.approx(99.5)


def test_low_curiosity_makes_cautious(core):
    core.curiosity = 20
    response = core.process_stimulus("noise", "bang", 0.5)
    assert response.reaction is ReactionType.CAUTIOUS
    assert response.intensity == 30


def test_known_pain_raises_fear(core):
    core.learn_from_outcome("fire:hot", False, 40)
    response = core.process_stimulus("fire", "hot", 1.0)
    assert response.reaction is ReactionType.FEAR
    assert response.intensity == 40
    assert core.fear == 40


def test_outcomes_are_mutually_exclusive(core):
    core.learn_from_outcome("x:y", True, 10)
    core.learn_from_outcome("x:y", False, 5)
    assert "x:y" not in core.pleasure_memory
    assert core.pain_memory["x:y"] == 5


def test_negative_outcome_hurts_and_dampens_curiosity(core):
    core.learn_from_outcome("cliff:edge", False, 50)
    assert core.integrity == pytest.approx(95)
    assert core.curiosity == pytest.approx(77.5)


@pytest.mark.parametrize("stimulus_type, data, intensity", [
    ("", "hold", 0.5),
    ("touch", "", 0.5),
    (None, "hold", 0.5),
    ("touch", "hold", float("nan")),
])
def test_invalid_stimulus_is_rejected_without_mutation(core, stimulus_type, data, intensity):
    before = core.get_current_state()
    response = core.process_stimulus(stimulus_type, data, intensity)
    assert response.rejected
    assert response.reaction is ReactionType.NEUTRAL
    assert core.get_current_state() == before


# =============================================================================
# BONDING AND PATTERNS
# =============================================================================

def test_feeding_builds_trust_and_energy(core):
    core.energy = 50
    trust = core.process_entity_interaction("father", InteractionType.FEEDING)
    assert trust == 60
    assert core.energy == 80
    assert core.get_trust_level("father") == 60
    assert core.get_trust_level("stranger") == 50


def test_harm_destroys_trust(core):
    trust = core.process_entity_interaction("stranger", "harm")
    assert trust == 30
    assert core.integrity == 90
    assert core.fear == 30


def test_unknown_interaction_kind_raises(core):
    with pytest.raises(ValueError):
        core.process_entity_interaction("father", "tickle")


def test_pattern_conflict_costs_stability(core):
    assert core.record_pattern("cry", "father_comes")
    assert core.record_pattern("cry", "father_comes")
    assert core.stability == 100

    assert not core.record_pattern("cry", "nothing")
    assert core.stability == 99
    assert core.predict_outcome("cry") == "nothing"


# =============================================================================
# EXPRESSION
# =============================================================================

@pytest.mark.parametrize("drives, expected", [
    ({"hunger": 80, "fear": 90}, ExpressionType.DISTRESS),
    ({"fear": 65, "loneliness": 90}, ExpressionType.FEAR),
    ({"loneliness": 65}, ExpressionType.SEEKING),
    ({"comfort": 75}, ExpressionType.CONTENT),
    ({}, ExpressionType.CURIOUS),
    ({"curiosity": 40}, ExpressionType.NEUTRAL),
])
def test_expression_priority(core, drives, expected):
    for name, value in drives.items():
        setattr(core, name, value)
    expression = core.express()
    assert expression.type is expected
    assert expression.sound in PRIMITIVE_SOUNDS[expected]


# =============================================================================
# REBIRTH
# =============================================================================

def test_rebirth_resets_life(core):
    core.learn_from_outcome("touch:hold", True, 20)
    core.learn_from_outcome("fire:hot", False, 40)
    core.process_entity_interaction("father", InteractionType.FEEDING)
    core.record_pattern("cry", "food")
    core.energy = 0
    core.tick()

    core.rebirth(["hunger"])

    assert core.is_alive
    assert (core.energy, core.integrity, core.stability) == (100, 100, 100)
    assert core.pain_memory == {"hunger": 100}
    assert core.pleasure_memory == {}
    assert core.bonding_memory == {}
    assert core.pattern_memory == {}
    assert (core.curiosity, core.hunger, core.fear, core.comfort, core.loneliness) == (80, 0, 10, 50, 30)
    assert core.generation == 2


def test_newborn_from_genetic_memory(clock, rng):
    memory = GeneticMemory(
        generation=2,
        total_deaths=1,
        inherited_fears={"energy_depletion": 20, "hunger": 10},
        traits=EvolutionTraits(metabolic_rate=100),
        death_causes=["energy_depletion"],
    )
    core = SurvivalCore.from_genetic_memory(memory, clock=clock, rng=rng)

    assert core.generation == 2
    assert core.pain_memory == {"energy_depletion": 100, "hunger": 10}
    assert core.drain_multiplier == pytest.approx(2.0)

    clock.advance(DRAIN_STEP_MS)
    core.tick()
    assert core.energy == pytest.approx(99.8)


def test_state_round_trip(core, clock, rng):
    core.learn_from_outcome("touch:hold", True, 20)
    core.process_entity_interaction("father", InteractionType.GENTLE_TOUCH)
    core.record_pattern("cry", "food")

    restored = SurvivalCore.from_state(core.to_state(), clock=clock, rng=rng)
    assert restored.get_current_state() == core.get_current_state()
    assert restored.pleasure_memory == core.pleasure_memory
    assert restored.bonding_memory == core.bonding_memory
    assert restored.predict_outcome("cry") == "food"
    assert math.isclose(restored.drain_multiplier, core.drain_multiplier)
