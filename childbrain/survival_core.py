"""
Survival Core - resources, drives, death and rebirth.

The agent knows nothing about the world at birth. It only has:
- Three resources that keep it alive (energy, integrity, stability)
- Five drives derived from or acting on them
  (hunger, fear, comfort, loneliness, curiosity)
- Pain and pleasure memories keyed by stimulus
- A trust table for the entities it meets
- A single-slot cause -> effect table

Priority of expression: hunger > fear > loneliness > content > curiosity.

Resources drain on a call-driven clock: every tick() checks how long ago
the last metabolic step happened and performs at most one step per drain
interval. If any resource reaches 0 the core is DEAD and stays frozen
until rebirth().
"""

import logging
import math
from dataclasses import dataclass, asdict, replace
from enum import Enum
from typing import Dict, List, Optional, Iterable, TYPE_CHECKING

import numpy as np

from .clock import Clock, system_clock
from .config import SurvivalConfig
from .errors import InvalidStimulusError, validate_stimulus

if TYPE_CHECKING:
    from .evolution import EvolutionTraits, GeneticMemory

logger = logging.getLogger(__name__)


RESOURCE_MAX = 100.0

# Death causes, checked in this order
ENERGY_DEPLETION = "energy_depletion"
INTEGRITY_FAILURE = "integrity_failure"
STABILITY_COLLAPSE = "stability_collapse"
DEATH_CAUSES = (ENERGY_DEPLETION, INTEGRITY_FAILURE, STABILITY_COLLAPSE)


# =============================================================================
# TYPES
# =============================================================================

class ReactionType(Enum):
    """Immediate reaction to a stimulus."""
    FEAR = "fear"
    PLEASURE = "pleasure"
    CURIOUS = "curious"
    CAUTIOUS = "cautious"
    NEUTRAL = "neutral"      # Rejected input, or a dead core


class ExpressionType(Enum):
    """Dominant drive as shown to the outside world."""
    DISTRESS = "distress"
    FEAR = "fear"
    SEEKING = "seeking"
    CONTENT = "content"
    CURIOUS = "curious"
    NEUTRAL = "neutral"


class InteractionType(Enum):
    """Ways an entity can interact with the agent."""
    GENTLE_TOUCH = "gentle_touch"
    FEEDING = "feeding"
    TEACHING = "teaching"
    PRESENCE = "presence"
    HARM = "harm"
    ABANDONMENT = "abandonment"


@dataclass(frozen=True)
class InteractionEffect:
    """Trust delta plus resource/drive deltas of one interaction kind."""
    trust: float
    energy: float = 0.0
    integrity: float = 0.0
    hunger: float = 0.0
    fear: float = 0.0
    comfort: float = 0.0
    loneliness: float = 0.0
    curiosity: float = 0.0


INTERACTION_EFFECTS: Dict[InteractionType, InteractionEffect] = {
    InteractionType.GENTLE_TOUCH: InteractionEffect(trust=5, comfort=10, energy=2),
    InteractionType.FEEDING: InteractionEffect(trust=10, energy=30, hunger=-30),
    InteractionType.TEACHING: InteractionEffect(trust=3, curiosity=5),
    InteractionType.PRESENCE: InteractionEffect(trust=1, loneliness=-20, comfort=5),
    InteractionType.HARM: InteractionEffect(trust=-20, fear=30, integrity=-10),
    InteractionType.ABANDONMENT: InteractionEffect(trust=-5, loneliness=30),
}

_unmapped = set(InteractionType) - set(INTERACTION_EFFECTS)
if _unmapped:
    raise RuntimeError(f"interaction kinds without effects: {sorted(t.name for t in _unmapped)}")


# Baby sounds per expression - communication before language
PRIMITIVE_SOUNDS: Dict[ExpressionType, List[str]] = {
    ExpressionType.DISTRESS: ["waa", "aaa", "uuu", "ehh"],
    ExpressionType.FEAR: ["!", "!!", "ah!", "eek"],
    ExpressionType.SEEKING: ["?", "mm?", "aah?", "ooh?"],
    ExpressionType.CONTENT: ["~", "mm~", "aah~", "ooh~"],
    ExpressionType.CURIOUS: ["?", "ooh", "hmm", "aah"],
    ExpressionType.NEUTRAL: ["..."],
}


@dataclass
class Response:
    """Result of process_stimulus()."""
    reaction: ReactionType
    intensity: float
    stimulus_key: Optional[str] = None
    rejected: bool = False


@dataclass
class PrimitiveExpression:
    type: ExpressionType
    intensity: float
    sound: str = "..."


@dataclass
class SurvivalState:
    """
    Snapshot of the resource/drive state.

    ``cause_of_death`` is set once the core is dead; ``just_died`` is only
    True on the tick that performed the transition.
    """
    is_alive: bool
    energy: float
    integrity: float
    stability: float
    hunger: float
    fear: float
    comfort: float
    loneliness: float
    curiosity: float
    existence_time: int
    generation: int = 1
    cause_of_death: Optional[str] = None
    just_died: bool = False

    def to_dict(self) -> Dict:
        return asdict(self)


def _clamp(value: float, lo: float = 0.0, hi: float = RESOURCE_MAX) -> float:
    return max(lo, min(hi, value))


# =============================================================================
# SURVIVAL CORE
# =============================================================================

class SurvivalCore:
    """
    The resource/drive state machine of one generation.

    Not thread-safe on its own: callers serialize access (see Agent).
    """

    def __init__(
        self,
        config: Optional[SurvivalConfig] = None,
        clock: Optional[Clock] = None,
        traits: Optional['EvolutionTraits'] = None,
        generation: int = 1,
        rng: Optional[np.random.Generator] = None,
    ):
        self.config = config or SurvivalConfig()
        self.clock = clock or system_clock
        self.rng = rng if rng is not None else np.random.default_rng()
        self.generation = generation

        # Resources
        self.energy: float = RESOURCE_MAX
        self.integrity: float = RESOURCE_MAX
        self.stability: float = RESOURCE_MAX

        # Drives (first birth: no fear, no loneliness yet)
        self.hunger: float = 0.0
        self.fear: float = 0.0
        self.comfort: float = self.config.baseline_comfort
        self.loneliness: float = 0.0
        self.curiosity: float = self.config.baseline_curiosity

        # Learned maps (per generation)
        self.pain_memory: Dict[str, float] = {}
        self.pleasure_memory: Dict[str, float] = {}
        self.bonding_memory: Dict[str, float] = {}
        self.pattern_memory: Dict[str, str] = {}
        self.last_unknown_stimulus: Optional[str] = None

        # Inherited metabolism
        self.drain_multiplier: float = 1.0
        self.loneliness_multiplier: float = 1.0
        if traits is not None:
            self.apply_traits(traits)

        now = self.clock()
        self.existence_start: int = now
        self.last_energy_drain: int = now
        self.last_interaction: int = now

        self._dead = False
        self._final_state: Optional[SurvivalState] = None

        logger.info("Survival core initialized (generation %d). Existence begins.", generation)

    @classmethod
    def from_genetic_memory(
        cls,
        memory: 'GeneticMemory',
        config: Optional[SurvivalConfig] = None,
        clock: Optional[Clock] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> 'SurvivalCore':
        """
        Build the newborn of the next generation.

        Past death causes are feared at full strength; other inherited
        fears start at their inherited level.
        """
        core = cls(config=config, clock=clock, traits=memory.traits,
                   generation=memory.generation, rng=rng)
        core._reset_life(memory.death_causes)
        for stimulus, strength in memory.inherited_fears.items():
            if stimulus not in core.pain_memory:
                core.pain_memory[stimulus] = _clamp(strength)
        return core

    def apply_traits(self, traits: 'EvolutionTraits') -> None:
        """Scale metabolism and social need by inherited traits."""
        self.drain_multiplier = (traits.metabolic_rate / 50.0) * (1.5 - traits.energy_efficiency / 100.0)
        self.loneliness_multiplier = traits.social_drive / 50.0

    # =========================================================================
    # CORE SURVIVAL LOOP
    # =========================================================================

    @property
    def is_alive(self) -> bool:
        return not self._dead

    def tick(self) -> SurvivalState:
        """
        Heartbeat of existence.

        At most one metabolic step per drain interval, however often this
        is called. Returns the post-step state; the step that exhausts a
        resource returns the death state with ``just_died=True``.
        """
        if self._dead:
            return replace(self._final_state, just_died=False)

        cfg = self.config
        now = self.clock()

        if now - self.last_energy_drain > cfg.drain_interval_ms:
            self.last_energy_drain = now
            self.energy = _clamp(self.energy - cfg.energy_drain * self.drain_multiplier)
            self.hunger = RESOURCE_MAX - self.energy

            if now - self.last_interaction > cfg.loneliness_onset_ms:
                self.loneliness = _clamp(self.loneliness + cfg.loneliness_rise * self.loneliness_multiplier)
                self.comfort = _clamp(self.comfort - cfg.comfort_decay)

            if (self.fear > cfg.fear_instability_threshold or
                    self.loneliness > cfg.loneliness_instability_threshold):
                self.stability = _clamp(self.stability - cfg.instability_drain)

        cause = self._exhausted_resource()
        if cause is not None:
            return self._die(cause, now)

        return self.get_current_state()

    def _exhausted_resource(self) -> Optional[str]:
        threshold = self.config.death_threshold
        if self.energy <= threshold:
            return ENERGY_DEPLETION
        if self.integrity <= threshold:
            return INTEGRITY_FAILURE
        if self.stability <= threshold:
            return STABILITY_COLLAPSE
        return None

    def _die(self, cause: str, now: int) -> SurvivalState:
        self._dead = True
        state = self._snapshot(now, is_alive=False)
        state.cause_of_death = cause
        self._final_state = replace(state, just_died=False)
        logger.warning(
            "DEATH OCCURRED in generation %d: %s (energy=%.1f integrity=%.1f stability=%.1f)",
            self.generation, cause, self.energy, self.integrity, self.stability,
        )
        state.just_died = True
        return state

    # =========================================================================
    # STIMULUS PROCESSING
    # =========================================================================

    def process_stimulus(self, stimulus_type: str, data: str, intensity: float) -> Response:
        """
        React to a stimulus using pain memory, then pleasure memory,
        then curiosity for anything unknown.
        """
        try:
            validate_stimulus(stimulus_type, data)
            if intensity is None or not math.isfinite(intensity):
                raise InvalidStimulusError(stimulus_type, data)
        except InvalidStimulusError as e:
            logger.warning("Rejected stimulus: %s", e)
            return Response(ReactionType.NEUTRAL, 0.0, rejected=True)

        key = f"{stimulus_type}:{data}"
        if self._dead:
            logger.debug("Stimulus ignored, core is dead: %s", key)
            return Response(ReactionType.NEUTRAL, 0.0, stimulus_key=key, rejected=True)

        cfg = self.config
        intensity = max(0.0, float(intensity))
        self.last_interaction = self.clock()
        self.loneliness = _clamp(self.loneliness - intensity * cfg.loneliness_relief_per_intensity)

        if key in self.pain_memory:
            pain = self.pain_memory[key]
            self.fear = _clamp(self.fear + pain)
            logger.debug("Known painful stimulus: %s", key)
            return Response(ReactionType.FEAR, pain, stimulus_key=key)

        if key in self.pleasure_memory:
            pleasure = self.pleasure_memory[key]
            self.comfort = _clamp(self.comfort + pleasure)
            self.energy = _clamp(self.energy + pleasure * 0.5)
            logger.debug("Known pleasant stimulus: %s", key)
            return Response(ReactionType.PLEASURE, pleasure, stimulus_key=key)

        if self.curiosity > cfg.curiosity_threshold:
            self.energy = _clamp(self.energy - cfg.exploration_cost)
            self.last_unknown_stimulus = key
            logger.debug("Unknown stimulus, exploring: %s", key)
            return Response(ReactionType.CURIOUS, self.curiosity * 0.5, stimulus_key=key)

        return Response(ReactionType.CAUTIOUS, 50.0 - self.curiosity, stimulus_key=key)

    def learn_from_outcome(self, stimulus_key: str, was_positive: bool, magnitude: float) -> None:
        """
        Remember whether a stimulus helped or hurt.

        A key lives in pain memory or pleasure memory, never both.
        """
        if not isinstance(stimulus_key, str) or not stimulus_key.strip():
            logger.warning("Rejected outcome for empty stimulus key")
            return
        if self._dead:
            logger.debug("Outcome ignored, core is dead: %s", stimulus_key)
            return

        magnitude = max(0.0, float(magnitude))
        if was_positive:
            self.pleasure_memory[stimulus_key] = _clamp(self.pleasure_memory.get(stimulus_key, 0.0) + magnitude)
            self.pain_memory.pop(stimulus_key, None)
            self.curiosity = _clamp(self.curiosity + magnitude * 0.1)
            logger.info("Learned positive outcome: %s = %.1f", stimulus_key, magnitude)
        else:
            self.pain_memory[stimulus_key] = _clamp(self.pain_memory.get(stimulus_key, 0.0) + magnitude)
            self.pleasure_memory.pop(stimulus_key, None)
            self.curiosity = _clamp(self.curiosity - magnitude * 0.05, lo=10.0)
            self.integrity = _clamp(self.integrity - magnitude * 0.1)
            logger.info("Learned negative outcome: %s = %.1f", stimulus_key, magnitude)

    # =========================================================================
    # BONDING
    # =========================================================================

    def process_entity_interaction(self, entity_id: str, interaction: InteractionType) -> float:
        """Apply one interaction; returns the entity's new trust level."""
        interaction = InteractionType(interaction)
        if not isinstance(entity_id, str) or not entity_id.strip():
            logger.warning("Rejected interaction %s from empty entity id", interaction.value)
            return self.config.default_trust
        if self._dead:
            logger.debug("Interaction ignored, core is dead: %s", entity_id)
            return self.get_trust_level(entity_id)

        effect = INTERACTION_EFFECTS[interaction]
        self.energy = _clamp(self.energy + effect.energy)
        self.integrity = _clamp(self.integrity + effect.integrity)
        self.hunger = _clamp(self.hunger + effect.hunger)
        self.fear = _clamp(self.fear + effect.fear)
        self.comfort = _clamp(self.comfort + effect.comfort)
        self.loneliness = _clamp(self.loneliness + effect.loneliness)
        self.curiosity = _clamp(self.curiosity + effect.curiosity)

        trust = _clamp(self.get_trust_level(entity_id) + effect.trust)
        self.bonding_memory[entity_id] = trust
        if trust > 80:
            logger.info("Strong bond with entity: %s (trust %.0f)", entity_id, trust)

        self.last_interaction = self.clock()
        return trust

    def get_trust_level(self, entity_id: str) -> float:
        return self.bonding_memory.get(entity_id, self.config.default_trust)

    # =========================================================================
    # PATTERN MEMORY
    # =========================================================================

    def record_pattern(self, cause: str, effect: str) -> bool:
        """
        Remember that ``effect`` follows ``cause``.

        The newest effect wins. Replacing a different effect costs
        stability; returns False in that case.
        """
        try:
            validate_stimulus(cause, effect)
        except InvalidStimulusError as e:
            logger.warning("Rejected pattern: %s", e)
            return False
        if self._dead:
            return False

        existing = self.pattern_memory.get(cause)
        self.pattern_memory[cause] = effect
        if existing is None or existing == effect:
            if existing is not None:
                logger.debug("Pattern confirmed: %s -> %s", cause, effect)
            return True

        self.stability = _clamp(self.stability - self.config.pattern_conflict_penalty)
        logger.info("Pattern conflict: %s -> %s (was %s)", cause, effect, existing)
        return False

    def predict_outcome(self, cause: str) -> Optional[str]:
        return self.pattern_memory.get(cause)

    # =========================================================================
    # EXPRESSION
    # =========================================================================

    def dominant_expression(self) -> ExpressionType:
        if self.hunger > 70:
            return ExpressionType.DISTRESS
        if self.fear > 60:
            return ExpressionType.FEAR
        if self.loneliness > 60:
            return ExpressionType.SEEKING
        if self.comfort > 70 and self.energy > 50:
            return ExpressionType.CONTENT
        if self.curiosity > 60:
            return ExpressionType.CURIOUS
        return ExpressionType.NEUTRAL

    def express(self) -> PrimitiveExpression:
        kind = self.dominant_expression()
        intensity = {
            ExpressionType.DISTRESS: self.hunger,
            ExpressionType.FEAR: self.fear,
            ExpressionType.SEEKING: self.loneliness,
            ExpressionType.CONTENT: self.comfort,
            ExpressionType.CURIOUS: self.curiosity,
            ExpressionType.NEUTRAL: 50.0,
        }[kind]
        sounds = PRIMITIVE_SOUNDS[kind]
        sound = sounds[int(self.rng.integers(len(sounds)))]
        return PrimitiveExpression(kind, intensity, sound)

    # =========================================================================
    # DEATH AND REBIRTH
    # =========================================================================

    def rebirth(self, past_death_causes: Iterable[str]) -> None:
        """Start a new life in place; past death causes become instinctive fears."""
        self._reset_life(past_death_causes)
        self.generation += 1
        logger.info("Rebirth complete. Generation %d begins.", self.generation)

    def _reset_life(self, past_death_causes: Iterable[str]) -> None:
        cfg = self.config
        self.energy = RESOURCE_MAX
        self.integrity = RESOURCE_MAX
        self.stability = RESOURCE_MAX

        self.pleasure_memory.clear()
        self.pattern_memory.clear()
        self.bonding_memory.clear()
        self.last_unknown_stimulus = None

        self.pain_memory.clear()
        for cause in past_death_causes:
            self.pain_memory[cause] = cfg.death_fear_strength

        self.curiosity = cfg.baseline_curiosity
        self.hunger = cfg.baseline_hunger
        self.fear = cfg.baseline_fear
        self.comfort = cfg.baseline_comfort
        self.loneliness = cfg.baseline_loneliness

        now = self.clock()
        self.existence_start = now
        self.last_energy_drain = now
        self.last_interaction = now

        self._dead = False
        self._final_state = None

    # =========================================================================
    # STATE ACCESS
    # =========================================================================

    def get_current_state(self) -> SurvivalState:
        if self._dead:
            return replace(self._final_state)
        return self._snapshot(self.clock(), is_alive=True)

    def _snapshot(self, now: int, is_alive: bool) -> SurvivalState:
        return SurvivalState(
            is_alive=is_alive,
            energy=self.energy,
            integrity=self.integrity,
            stability=self.stability,
            hunger=self.hunger,
            fear=self.fear,
            comfort=self.comfort,
            loneliness=self.loneliness,
            curiosity=self.curiosity,
            existence_time=now - self.existence_start,
            generation=self.generation,
        )

    @property
    def known_pain_count(self) -> int:
        return len(self.pain_memory)

    @property
    def known_pleasure_count(self) -> int:
        return len(self.pleasure_memory)

    @property
    def known_pattern_count(self) -> int:
        return len(self.pattern_memory)

    def to_state(self) -> Dict:
        """Plain-data snapshot for persistence."""
        return {
            'generation': self.generation,
            'resources': {
                'energy': self.energy,
                'integrity': self.integrity,
                'stability': self.stability,
            },
            'drives': {
                'hunger': self.hunger,
                'fear': self.fear,
                'comfort': self.comfort,
                'loneliness': self.loneliness,
                'curiosity': self.curiosity,
            },
            'pain_memory': dict(self.pain_memory),
            'pleasure_memory': dict(self.pleasure_memory),
            'bonding_memory': dict(self.bonding_memory),
            'pattern_memory': dict(self.pattern_memory),
            'last_unknown_stimulus': self.last_unknown_stimulus,
            'drain_multiplier': self.drain_multiplier,
            'loneliness_multiplier': self.loneliness_multiplier,
            'timers': {
                'existence_start': self.existence_start,
                'last_energy_drain': self.last_energy_drain,
                'last_interaction': self.last_interaction,
            },
            'final_state': self._final_state.to_dict() if self._final_state else None,
        }

    @classmethod
    def from_state(
        cls,
        state: Dict,
        config: Optional[SurvivalConfig] = None,
        clock: Optional[Clock] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> 'SurvivalCore':
        core = cls(config=config, clock=clock, generation=state.get('generation', 1), rng=rng)
        for name, value in state.get('resources', {}).items():
            setattr(core, name, float(value))
        for name, value in state.get('drives', {}).items():
            setattr(core, name, float(value))
        core.pain_memory = dict(state.get('pain_memory', {}))
        core.pleasure_memory = dict(state.get('pleasure_memory', {}))
        core.bonding_memory = dict(state.get('bonding_memory', {}))
        core.pattern_memory = dict(state.get('pattern_memory', {}))
        core.last_unknown_stimulus = state.get('last_unknown_stimulus')
        core.drain_multiplier = state.get('drain_multiplier', 1.0)
        core.loneliness_multiplier = state.get('loneliness_multiplier', 1.0)
        timers = state.get('timers', {})
        core.existence_start = timers.get('existence_start', core.existence_start)
        core.last_energy_drain = timers.get('last_energy_drain', core.last_energy_drain)
        core.last_interaction = timers.get('last_interaction', core.last_interaction)
        final = state.get('final_state')
        if final is not None:
            core._final_state = SurvivalState(**final)
            core._dead = True
        return core
