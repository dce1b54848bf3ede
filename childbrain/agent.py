"""
Agent - one living child wired to its memories

Data flow:
    stimulus -> SurvivalCore reaction
             -> AssociativeMemory activation (concept + reaction)
             -> EventPatternAnalyzer event
    tick     -> SurvivalCore metabolism -> death?
             -> EvolutionLedger.record_death -> prepare_rebirth
             -> new SurvivalCore from GeneticMemory (atomic swap)

Memory of the world (concept graph, event log) outlives every generation;
only the survival core is replaced.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import numpy as np

from .associative_memory import AssociativeMemory, Association, MemoryStatus
from .clock import Clock, system_clock
from .config import AgentConfig
from .errors import InvalidStimulusError, validate_stimulus
from .event_patterns import EventPatternAnalyzer, PatternStatus, Prediction
from .persistence import AgentPersistence, FileSnapshotStore
from .evolution import EvolutionLedger, EvolutionSummary, SelectionChallenge
from .survival_core import (
    SurvivalCore, SurvivalState, Response, PrimitiveExpression, InteractionType,
)

logger = logging.getLogger(__name__)


@dataclass
class AgentStatus:
    survival: SurvivalState
    memory: MemoryStatus
    patterns: PatternStatus
    evolution: EvolutionSummary
    known_pain: int
    known_pleasure: int
    known_patterns: int
    tick_count: int


class Agent:
    """
    Serializes every mutation and read behind one re-entrant lock.

    Readers never see a half-reset core: death and rebirth complete
    inside a single locked tick().
    """

    def __init__(
        self,
        config: Optional[AgentConfig] = None,
        clock: Optional[Clock] = None,
        core: Optional[SurvivalCore] = None,
        memory: Optional[AssociativeMemory] = None,
        patterns: Optional[EventPatternAnalyzer] = None,
        ledger: Optional[EvolutionLedger] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self.config = config or AgentConfig()
        self.clock = clock or system_clock
        self.rng = rng if rng is not None else np.random.default_rng()

        self.core = core or SurvivalCore(self.config.survival, self.clock, rng=self.rng)
        self.memory = memory or AssociativeMemory(self.config.memory, self.clock)
        self.patterns = patterns or EventPatternAnalyzer(self.config.patterns, self.clock)
        self.ledger = ledger or EvolutionLedger(self.config.evolution)

        self.tick_count = 0
        self.persistence = None  # AgentPersistence, attached by create_agent()
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    # =========================================================================
    # STIMULI
    # =========================================================================

    def process_stimulus(self, stimulus_type: str, data: str, intensity: float) -> Response:
        with self._lock:
            response = self.core.process_stimulus(stimulus_type, data, intensity)
            if response.rejected:
                return response

            key = response.stimulus_key
            self.memory.activate(key, max(0.0, float(intensity)))
            reaction = response.reaction.value
            self.memory.activate(f"reaction:{reaction}", min(1.0, response.intensity / 100.0))
            self.patterns.record_event(stimulus_type, data, {
                'reaction': reaction,
                'intensity': response.intensity,
            })
            return response

    def learn_from_outcome(self, stimulus_key: str, was_positive: bool, magnitude: float) -> None:
        with self._lock:
            self.core.learn_from_outcome(stimulus_key, was_positive, magnitude)

    def process_entity_interaction(self, entity_id: str, interaction: InteractionType) -> float:
        with self._lock:
            interaction = InteractionType(interaction)
            trust = self.core.process_entity_interaction(entity_id, interaction)
            if isinstance(entity_id, str) and entity_id.strip():
                self.memory.activate(f"entity:{entity_id}", trust / 100.0)
                self.patterns.record_event("interaction", interaction.value, {
                    'entity': entity_id,
                    'trust': trust,
                })
            return trust

    def record_pattern(self, cause: str, effect: str) -> bool:
        """Remember cause -> effect and link both concepts."""
        with self._lock:
            try:
                validate_stimulus(cause, effect)
            except InvalidStimulusError as e:
                logger.warning("Rejected pattern: %s", e)
                return False
            consistent = self.core.record_pattern(cause, effect)
            self.memory.associate(cause, effect, self.config.memory.learning_rate)
            return consistent

    def predict_outcome(self, cause: str) -> Optional[str]:
        with self._lock:
            return self.core.predict_outcome(cause)

    def express(self) -> PrimitiveExpression:
        with self._lock:
            return self.core.express()

    # =========================================================================
    # EVOLUTION HOOKS
    # =========================================================================

    def record_survival_success(self, factor: str, importance: float) -> None:
        with self._lock:
            self.ledger.record_survival_success(factor, importance)

    def record_father_bond(self, bond_strength: float) -> None:
        with self._lock:
            self.ledger.record_father_bond(bond_strength)

    def apply_selection_pressure(self, challenge: SelectionChallenge) -> None:
        with self._lock:
            self.ledger.apply_selection_pressure(challenge)

    # =========================================================================
    # HEARTBEAT
    # =========================================================================

    def tick(self) -> SurvivalState:
        """
        One heartbeat. On the dying tick the next generation is born
        before the lock is released; the returned state is the death
        state with ``just_died=True``.
        """
        with self._lock:
            self.tick_count += 1
            state = self.core.tick()

            if state.just_died:
                self._reincarnate(state)

            if self.config.decay_every > 0 and self.tick_count % self.config.decay_every == 0:
                self.memory.apply_decay()
            return state

    def _reincarnate(self, final_state: SurvivalState) -> None:
        cause = final_state.cause_of_death
        self.patterns.record_event("death", cause, {'generation': final_state.generation})
        self.ledger.record_death(cause, final_state)
        genetic_memory = self.ledger.prepare_rebirth()
        self.core = SurvivalCore.from_genetic_memory(
            genetic_memory, self.config.survival, self.clock, rng=self.rng,
        )
        logger.info("Generation %d born with %d inherited fears",
                    genetic_memory.generation, len(genetic_memory.inherited_fears))

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_current_state(self) -> SurvivalState:
        with self._lock:
            return self.core.get_current_state()

    def predict_next_concept(self) -> Optional[str]:
        with self._lock:
            return self.memory.predict_next()

    def predict_events(self, event_key: str) -> List[Prediction]:
        with self._lock:
            return self.patterns.predict_next(event_key)

    def get_associations(self, concept_id: str) -> List[Association]:
        with self._lock:
            return self.memory.get_associations(concept_id)

    def get_trust_level(self, entity_id: str) -> float:
        with self._lock:
            return self.core.get_trust_level(entity_id)

    def get_status(self) -> AgentStatus:
        with self._lock:
            return AgentStatus(
                survival=self.core.get_current_state(),
                memory=self.memory.get_status(),
                patterns=self.patterns.get_status(),
                evolution=self.ledger.get_summary(),
                known_pain=self.core.known_pain_count,
                known_pleasure=self.core.known_pleasure_count,
                known_patterns=self.core.known_pattern_count,
                tick_count=self.tick_count,
            )

    # =========================================================================
    # STATE
    # =========================================================================

    def to_state(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'survival': self.core.to_state(),
                'memory': self.memory.to_state(),
                'patterns': self.patterns.to_state(),
                'evolution': self.ledger.to_state(),
                'tick_count': self.tick_count,
            }

    def restore_state(self, state: Dict[str, Any]) -> None:
        """Replace all four components from a snapshot (missing parts are kept)."""
        with self._lock:
            if 'survival' in state:
                self.core = SurvivalCore.from_state(
                    state['survival'], self.config.survival, self.clock, rng=self.rng)
            if 'memory' in state:
                self.memory = AssociativeMemory.from_state(
                    state['memory'], self.config.memory, self.clock)
            if 'patterns' in state:
                self.patterns = EventPatternAnalyzer.from_state(
                    state['patterns'], self.config.patterns, self.clock)
            if 'evolution' in state:
                self.ledger = EvolutionLedger.from_state(state['evolution'], self.config.evolution)
            self.tick_count = state.get('tick_count', self.tick_count)

    @classmethod
    def from_state(cls, state: Dict[str, Any], config: Optional[AgentConfig] = None,
                   clock: Optional[Clock] = None,
                   rng: Optional[np.random.Generator] = None) -> 'Agent':
        agent = cls(config=config, clock=clock, rng=rng)
        agent.restore_state(state)
        return agent

    def save(self) -> bool:
        """Snapshot through the attached persistence, if any."""
        if self.persistence is None:
            return False
        return self.persistence.save_snapshot(self)


# =============================================================================
# FACTORY
# =============================================================================

def create_agent(
    save_directory: Optional[str] = None,
    clock: Optional[Clock] = None,
    seed: Optional[int] = None,
    config: Optional[AgentConfig] = None,
    **overrides: Any,
) -> Agent:
    """
    Factory function to create an agent.

    Args:
        save_directory: Where snapshots live; an existing snapshot there
            is loaded. None keeps the agent in memory only.
        clock: Millisecond clock (defaults to the wall clock)
        seed: Seed for the expression RNG
        config: Base configuration (defaults to AgentConfig())
        **overrides: ``section__field=value`` config overrides,
            e.g. ``survival__drain_interval_ms=5000``

    Returns:
        Configured Agent instance
    """
    config = config or AgentConfig()
    config.apply_overrides(**overrides)
    if save_directory is not None:
        config.persistence.save_directory = save_directory

    agent = Agent(config=config, clock=clock, rng=np.random.default_rng(seed))

    if config.persistence.save_directory:
        store = FileSnapshotStore(config.persistence.save_directory,
                                  max_backups=config.persistence.max_backups)
        agent.persistence = AgentPersistence(
            store, auto_save_interval=config.persistence.auto_save_interval)
        agent.persistence.load_snapshot(agent)

    return agent
