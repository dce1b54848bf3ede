import pytest

from childbrain import (
    EvolutionLedger, EvolutionTraits, RebirthError, SelectionChallenge, SurvivalState,
)


def final_state(**overrides):
    values = dict(
        is_alive=False, energy=50.0, integrity=0.0, stability=60.0,
        hunger=50.0, fear=20.0, comfort=40.0, loneliness=30.0, curiosity=70.0,
        existence_time=1000, cause_of_death="integrity_failure",
    )
    values.update(overrides)
    return SurvivalState(**values)


# =============================================================================
# DEATH
# =============================================================================

def test_death_strengthens_fear_and_advances_generation(ledger):
    ledger.record_death("integrity_failure", final_state())
    assert ledger.inherited_fears == {"integrity_failure": 20}
    assert ledger.generation == 2
    assert ledger.total_deaths == 1
    assert ledger.death_causes == ["integrity_failure"]


def test_inherited_fear_is_capped(ledger):
    for _ in range(7):
        ledger.record_death("integrity_failure", final_state())
        ledger.prepare_rebirth()
    assert ledger.inherited_fears["integrity_failure"] == 100
    assert ledger.death_causes == ["integrity_failure"]
    assert ledger.total_deaths == 7


def test_starvation_breeds_efficiency(ledger):
    ledger.record_death("energy_depletion", final_state(energy=0.0))
    assert ledger.inherited_fears == {"energy_depletion": 20, "hunger": 10}
    assert ledger.traits.energy_efficiency == 55


def test_lonely_and_terrified_deaths_shape_traits(ledger):
    ledger.record_death("stability_collapse", final_state(loneliness=90.0, fear=85.0))
    assert ledger.traits.social_drive == 60
    assert ledger.traits.caution == 55


# =============================================================================
# REBIRTH PROTOCOL
# =============================================================================

def test_genetic_memory_is_consumed_once(ledger):
    ledger.record_death("energy_depletion", final_state(energy=0.0))
    memory = ledger.prepare_rebirth()

    assert memory.generation == 2
    assert memory.total_deaths == 1
    assert memory.death_causes == ["energy_depletion"]
    assert memory.inherited_fears["energy_depletion"] == 20

    with pytest.raises(RebirthError):
        ledger.prepare_rebirth()


def test_rebirth_without_death_is_an_error(ledger):
    with pytest.raises(RebirthError):
        ledger.prepare_rebirth()


def test_second_death_before_rebirth_is_an_error(ledger):
    ledger.record_death("energy_depletion", final_state(energy=0.0))
    with pytest.raises(RebirthError):
        ledger.record_death("integrity_failure", final_state())

    assert ledger.generation == 2
    assert ledger.total_deaths == 1
    assert ledger.prepare_rebirth().death_causes == ["energy_depletion"]


def test_genetic_memory_is_a_snapshot(ledger):
    ledger.record_death("energy_depletion", final_state(energy=0.0))
    memory = ledger.prepare_rebirth()
    ledger.apply_selection_pressure(SelectionChallenge.LONELINESS)
    ledger.record_survival_success("warmth", 40)

    assert memory.traits.social_drive == 50
    assert "warmth" not in memory.inherited_affinities


# =============================================================================
# POSITIVE EVOLUTION
# =============================================================================

def test_survival_success_builds_affinity(ledger):
    ledger.record_survival_success("father_voice", 30)
    ledger.record_survival_success("father_voice", 30)
    assert ledger.inherited_affinities["father_voice"] == 30


def test_father_bond_only_counts_when_strong(ledger):
    ledger.record_father_bond(70)
    assert ledger.inherited_affinities == {}

    ledger.record_father_bond(85)
    assert ledger.traits.bonding_capacity == 52
    assert ledger.inherited_affinities["father_presence"] == 55


@pytest.mark.parametrize("challenge, trait, expected", [
    (SelectionChallenge.ENERGY_CRISIS, "energy_efficiency", 52),
    (SelectionChallenge.ENERGY_CRISIS, "metabolic_rate", 49),
    (SelectionChallenge.LONELINESS, "social_drive", 53),
    (SelectionChallenge.THREAT_AVOIDED, "caution", 52),
    (SelectionChallenge.PATTERN_LEARNED, "pattern_recognition", 51),
    (SelectionChallenge.BOND_FORMED, "bonding_capacity", 52),
])
def test_selection_pressure(ledger, challenge, trait, expected):
    ledger.apply_selection_pressure(challenge)
    assert getattr(ledger.traits, trait) == expected


def test_selection_pressure_accepts_names(ledger):
    ledger.apply_selection_pressure("threat_avoided")
    assert ledger.traits.caution == 52
    with pytest.raises(ValueError):
        ledger.apply_selection_pressure("meteor")


def test_traits_are_bounded(ledger):
    for _ in range(40):
        ledger.apply_selection_pressure(SelectionChallenge.ENERGY_CRISIS)
        ledger.apply_selection_pressure(SelectionChallenge.LONELINESS)
    assert ledger.traits.energy_efficiency == 100
    assert ledger.traits.social_drive == 100
    assert ledger.traits.metabolic_rate == 20


def test_metabolic_rate_floor():
    traits = EvolutionTraits(metabolic_rate=2.0, caution=-5.0, curiosity=140.0)
    traits.clamp()
    assert traits.metabolic_rate == 10
    assert traits.caution == 0
    assert traits.curiosity == 100


# =============================================================================
# SUMMARY AND STATE
# =============================================================================

def test_summary(ledger):
    summary = ledger.get_summary()
    assert summary.generation == 1
    assert summary.dominant_trait == "energy_efficient"
    assert summary.evolution_progress == 0

    ledger.record_death("stability_collapse", final_state(loneliness=90.0))
    ledger.apply_selection_pressure(SelectionChallenge.LONELINESS)
    summary = ledger.get_summary()
    assert summary.dominant_trait == "social"
    assert summary.evolution_progress == pytest.approx(13 / 8)
    assert summary.inherited_fears == 1
    assert summary.total_deaths == 1


def test_state_round_trip(ledger):
    ledger.record_death("energy_depletion", final_state(energy=0.0))
    ledger.record_father_bond(90)

    restored = EvolutionLedger.from_state(ledger.to_state())
    assert restored.get_summary() == ledger.get_summary()
    assert restored.traits == ledger.traits
    assert restored.rebirth_pending
    assert restored.prepare_rebirth().death_causes == ["energy_depletion"]
