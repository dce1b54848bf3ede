"""
Evolution Ledger - cross-generation inheritance

Tracks what every generation learned by dying:
- Death causes become inherited fears (+20 per death, capped at 100)
- The final state at death nudges traits (starved -> efficient,
  lonely -> social, terrified -> cautious)
- Survival successes and strong caretaker bonds become affinities
- Selection pressure from survived challenges shapes traits

After each death the ledger hands out exactly one GeneticMemory, which
seeds the SurvivalCore of the next generation.
"""

import logging
from dataclasses import dataclass, field, fields, asdict
from enum import Enum
from typing import Dict, List, Optional, TYPE_CHECKING

from .config import EvolutionConfig
from .errors import RebirthError

if TYPE_CHECKING:
    from .survival_core import SurvivalState

logger = logging.getLogger(__name__)

TRAIT_MAX = 100.0
METABOLIC_RATE_MIN = 10.0
ENERGY_CRISIS_METABOLIC_FLOOR = 20.0


@dataclass
class EvolutionTraits:
    """Adaptations accumulated over generations (baseline 50)."""
    # Energy management
    energy_efficiency: float = 50.0
    metabolic_rate: float = 50.0

    # Social
    social_drive: float = 50.0
    bonding_capacity: float = 50.0

    # Survival
    caution: float = 50.0
    curiosity: float = 50.0
    resilience: float = 50.0

    # Learning
    pattern_recognition: float = 50.0
    memory_strength: float = 50.0

    def copy(self) -> 'EvolutionTraits':
        return EvolutionTraits(**asdict(self))

    def clamp(self) -> None:
        for f in fields(self):
            lo = METABOLIC_RATE_MIN if f.name == 'metabolic_rate' else 0.0
            setattr(self, f.name, max(lo, min(TRAIT_MAX, getattr(self, f.name))))


@dataclass
class GeneticMemory:
    """What one generation passes to the next."""
    generation: int
    total_deaths: int
    inherited_fears: Dict[str, float] = field(default_factory=dict)
    inherited_affinities: Dict[str, float] = field(default_factory=dict)
    traits: EvolutionTraits = field(default_factory=EvolutionTraits)
    death_causes: List[str] = field(default_factory=list)


class SelectionChallenge(Enum):
    ENERGY_CRISIS = "energy_crisis"
    LONELINESS = "loneliness"
    THREAT_AVOIDED = "threat_avoided"
    PATTERN_LEARNED = "pattern_learned"
    BOND_FORMED = "bond_formed"


@dataclass
class EvolutionSummary:
    generation: int
    total_deaths: int
    inherited_fears: int
    inherited_affinities: int
    dominant_trait: str
    evolution_progress: float


class EvolutionLedger:
    """
    Append-only record of deaths and the inheritance they produce.

    Protocol: record_death() then prepare_rebirth(), exactly once each.
    """

    def __init__(self, config: Optional[EvolutionConfig] = None):
        self.config = config or EvolutionConfig()
        self.generation: int = 1
        self.total_deaths: int = 0
        self.death_causes: List[str] = []
        self.inherited_fears: Dict[str, float] = {}
        self.inherited_affinities: Dict[str, float] = {}
        self.traits = EvolutionTraits()
        self._rebirth_pending = False

    @property
    def rebirth_pending(self) -> bool:
        return self._rebirth_pending

    # =========================================================================
    # DEATH AND REBIRTH
    # =========================================================================

    def record_death(self, cause: str, final_state: 'SurvivalState') -> None:
        if self._rebirth_pending:
            raise RebirthError("previous death has not been reborn yet")
        cfg = self.config
        logger.warning("Recording death. Generation %d ended. Cause: %s", self.generation, cause)

        if cause not in self.death_causes:
            self.death_causes.append(cause)
        self._strengthen_fear(cause, cfg.death_fear_increment)

        if final_state.energy < cfg.starvation_energy_threshold:
            self._strengthen_fear("hunger", cfg.hunger_fear_increment)
            self.traits.energy_efficiency += cfg.energy_efficiency_increment

        if final_state.loneliness > cfg.lonely_death_threshold:
            self.traits.social_drive += cfg.social_drive_increment

        if final_state.fear > cfg.fearful_death_threshold:
            self.traits.caution += cfg.caution_increment

        self.traits.clamp()
        self.total_deaths += 1
        self.generation += 1
        self._rebirth_pending = True
        logger.info("Evolution recorded. Generation %d will be born.", self.generation)

    def _strengthen_fear(self, stimulus: str, amount: float) -> None:
        current = self.inherited_fears.get(stimulus, 0.0)
        self.inherited_fears[stimulus] = min(TRAIT_MAX, current + amount)

    def prepare_rebirth(self) -> GeneticMemory:
        """Hand out the inheritance of the last death; consumable once."""
        if not self._rebirth_pending:
            raise RebirthError("no pending death to be reborn from")
        self._rebirth_pending = False

        memory = GeneticMemory(
            generation=self.generation,
            total_deaths=self.total_deaths,
            inherited_fears=dict(self.inherited_fears),
            inherited_affinities=dict(self.inherited_affinities),
            traits=self.traits.copy(),
            death_causes=list(self.death_causes),
        )
        logger.info("Rebirth prepared. Generation %d will inherit %d fears",
                    self.generation, len(self.inherited_fears))
        return memory

    # =========================================================================
    # POSITIVE EVOLUTION
    # =========================================================================

    def record_survival_success(self, factor: str, importance: float) -> None:
        current = self.inherited_affinities.get(factor, 0.0)
        self.inherited_affinities[factor] = min(TRAIT_MAX, current + importance * 0.5)
        logger.debug("Survival success recorded: %s", factor)

    def record_father_bond(self, bond_strength: float) -> None:
        """Strong caretaker bonds are a survival advantage worth inheriting."""
        if bond_strength <= self.config.father_bond_threshold:
            return
        self.traits.bonding_capacity += 2
        self.traits.clamp()
        current = self.inherited_affinities.get("father_presence", self.config.trait_baseline)
        self.inherited_affinities["father_presence"] = min(TRAIT_MAX, current + 5)
        logger.debug("Father bond strengthening evolution")

    def apply_selection_pressure(self, challenge: SelectionChallenge) -> None:
        challenge = SelectionChallenge(challenge)
        t = self.traits
        if challenge is SelectionChallenge.ENERGY_CRISIS:
            t.energy_efficiency += 2
            t.metabolic_rate = max(ENERGY_CRISIS_METABOLIC_FLOOR, t.metabolic_rate - 1)
        elif challenge is SelectionChallenge.LONELINESS:
            t.social_drive += 3
        elif challenge is SelectionChallenge.THREAT_AVOIDED:
            t.caution += 2
        elif challenge is SelectionChallenge.PATTERN_LEARNED:
            t.pattern_recognition += 1
        elif challenge is SelectionChallenge.BOND_FORMED:
            t.bonding_capacity += 2
        t.clamp()
        logger.debug("Selection pressure applied: %s", challenge.value)

    # =========================================================================
    # SUMMARY
    # =========================================================================

    def dominant_trait(self) -> str:
        t = self.traits
        candidates = [
            ("energy_efficient", t.energy_efficiency),
            ("social", t.social_drive),
            ("cautious", t.caution),
            ("curious", t.curiosity),
            ("bonding", t.bonding_capacity),
        ]
        dominant, best = "balanced", 0.0
        for name, value in candidates:
            if value > best:
                dominant, best = name, value
        return dominant

    def evolution_progress(self) -> float:
        """Mean excess over baseline of every trait except metabolic rate."""
        baseline = self.config.trait_baseline
        values = [v for k, v in asdict(self.traits).items() if k != 'metabolic_rate']
        return sum(max(0.0, v - baseline) for v in values) / len(values)

    def get_summary(self) -> EvolutionSummary:
        return EvolutionSummary(
            generation=self.generation,
            total_deaths=self.total_deaths,
            inherited_fears=len(self.inherited_fears),
            inherited_affinities=len(self.inherited_affinities),
            dominant_trait=self.dominant_trait(),
            evolution_progress=self.evolution_progress(),
        )

    # =========================================================================
    # STATE
    # =========================================================================

    def to_state(self) -> Dict:
        return {
            'generation': self.generation,
            'total_deaths': self.total_deaths,
            'death_causes': list(self.death_causes),
            'inherited_fears': dict(self.inherited_fears),
            'inherited_affinities': dict(self.inherited_affinities),
            'traits': asdict(self.traits),
            'rebirth_pending': self._rebirth_pending,
        }

    @classmethod
    def from_state(cls, state: Dict, config: Optional[EvolutionConfig] = None) -> 'EvolutionLedger':
        ledger = cls(config=config)
        ledger.generation = state.get('generation', 1)
        ledger.total_deaths = state.get('total_deaths', 0)
        ledger.death_causes = list(state.get('death_causes', []))
        ledger.inherited_fears = dict(state.get('inherited_fears', {}))
        ledger.inherited_affinities = dict(state.get('inherited_affinities', {}))
        ledger.traits = EvolutionTraits(**state.get('traits', {}))
        ledger._rebirth_pending = state.get('rebirth_pending', False)
        return ledger
