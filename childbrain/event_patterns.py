"""
Event Pattern Analyzer - discrete event log mining

Three kinds of regularity are extracted from a bounded event history:
- TEMPORAL: an event key that recurs at a steady interval
- CAUSAL:   an effect that usually follows a cause within a short window
- SEQUENCE: an exact chain of 3-5 event keys that repeats

Analysis is deterministic; the same event stream always yields the same
registry of patterns.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional, Set, Tuple

import numpy as np

from .clock import Clock, system_clock, MINUTE_MS, HOUR_MS, DAY_MS
from .config import PatternConfig
from .errors import InvalidStimulusError, validate_stimulus

logger = logging.getLogger(__name__)


# =============================================================================
# DATA MODEL
# =============================================================================

@dataclass
class Event:
    type: str
    data: str
    timestamp: int
    context: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"{self.type}:{self.data}"


@dataclass
class TemporalPattern:
    event_key: str
    average_interval: float
    regularity: float
    occurrences: List[int] = field(default_factory=list)
    description: str = ""


@dataclass
class CausalPattern:
    cause: str
    effect: str
    probability: float
    observation_count: int
    avg_delay: float = 0.0
    description: str = ""


@dataclass
class SequencePattern:
    sequence: Tuple[str, ...]
    occurrences: int
    confidence: float

    @property
    def id(self) -> str:
        return " -> ".join(self.sequence)


@dataclass
class Prediction:
    effect: str
    probability: float
    reason: str


@dataclass
class PatternStatus:
    event_count: int
    temporal: int
    causal: int
    sequence: int

    @property
    def total(self) -> int:
        return self.temporal + self.causal + self.sequence


def describe_interval(ms: float) -> str:
    """Human-readable period of a temporal pattern."""
    if ms < MINUTE_MS:
        return "less than a minute"
    if ms < HOUR_MS:
        return f"{int(ms // MINUTE_MS)} minutes"
    if ms < DAY_MS:
        return f"{int(ms // HOUR_MS)} hours"
    return f"{int(ms // DAY_MS)} days"


# =============================================================================
# ANALYZER
# =============================================================================

class EventPatternAnalyzer:
    """
    Bounded event log with temporal, causal and sequence mining.

    Each recorded event is counted as an effect of every one of the
    preceding ``co_occurrence_window`` events, at most once per cause
    occurrence. An event rotating out of the history takes its counts with
    it, so a counter never exceeds the number of its causes in the history.
    """

    def __init__(self, config: Optional[PatternConfig] = None, clock: Optional[Clock] = None):
        self.config = config or PatternConfig()
        self.clock = clock or system_clock

        self.history: Deque[Event] = deque(maxlen=self.config.max_history)

        # cause -> effect -> [count, total delay ms]
        self._co_occurrence: Dict[str, Dict[str, List[int]]] = {}

        self.temporal_patterns: Dict[str, TemporalPattern] = {}
        self.causal_patterns: Dict[Tuple[str, str], CausalPattern] = {}
        self.sequence_patterns: Dict[str, SequencePattern] = {}

    # =========================================================================
    # INGEST
    # =========================================================================

    def record_event(self, event_type: str, data: str,
                     context: Optional[Dict[str, Any]] = None) -> Optional[Event]:
        """Append an event; returns None if it was rejected."""
        try:
            validate_stimulus(event_type, data)
        except InvalidStimulusError as e:
            logger.warning("Rejected event: %s", e)
            return None

        event = Event(event_type, data, self.clock(), dict(context or {}))

        if len(self.history) == self.history.maxlen:
            self._forget_oldest()

        window = list(self.history)[-self.config.co_occurrence_window:]
        already_followed = False
        for previous in reversed(window):
            if not already_followed:
                effects = self._co_occurrence.setdefault(previous.key, {})
                counter = effects.setdefault(event.key, [0, 0])
                counter[0] += 1
                counter[1] += event.timestamp - previous.timestamp
            if previous.key == event.key:
                already_followed = True

        self.history.append(event)
        logger.debug("Event recorded: %s", event.key)

        if len(self.history) >= self.config.min_events_for_analysis:
            self.analyze()
        return event

    def _forget_oldest(self) -> None:
        """Withdraw the counts the oldest event contributed as a cause."""
        oldest = self.history[0]
        effects = self._co_occurrence.get(oldest.key, {})
        counted: Set[str] = set()
        for later in list(self.history)[1:self.config.co_occurrence_window + 1]:
            if later.key in counted:
                continue
            counted.add(later.key)
            counter = effects.get(later.key)
            if counter is None:
                continue
            counter[0] -= 1
            counter[1] -= later.timestamp - oldest.timestamp
            if counter[0] <= 0:
                del effects[later.key]
        if not effects:
            self._co_occurrence.pop(oldest.key, None)

    def analyze(self) -> None:
        self._find_temporal_patterns()
        self._find_causal_patterns()
        self._find_sequence_patterns()

    # =========================================================================
    # TEMPORAL
    # =========================================================================

    def _find_temporal_patterns(self) -> None:
        cfg = self.config
        times: Dict[str, List[int]] = {}
        for event in self.history:
            times.setdefault(event.key, []).append(event.timestamp)

        found: Dict[str, TemporalPattern] = {}
        for key, stamps in times.items():
            if len(stamps) < cfg.min_temporal_occurrences:
                continue
            intervals = np.diff(np.asarray(stamps, dtype=np.float64))
            mean = float(np.mean(intervals))
            if mean <= 0:
                continue
            regularity = 1.0 - min(1.0, float(np.std(intervals)) / mean)

            if regularity > cfg.min_regularity and mean >= cfg.min_temporal_interval_ms:
                found[key] = TemporalPattern(
                    event_key=key,
                    average_interval=mean,
                    regularity=regularity,
                    occurrences=list(stamps),
                    description=describe_interval(mean),
                )
                if key not in self.temporal_patterns:
                    logger.info("New temporal pattern: %s every %s", key, found[key].description)

        self.temporal_patterns = found

    # =========================================================================
    # CAUSAL
    # =========================================================================

    def _find_causal_patterns(self) -> None:
        cfg = self.config
        cause_counts: Dict[str, int] = {}
        for event in self.history:
            cause_counts[event.key] = cause_counts.get(event.key, 0) + 1

        found: Dict[Tuple[str, str], CausalPattern] = {}
        for cause, effects in self._co_occurrence.items():
            total = cause_counts.get(cause, 0)
            if total == 0:
                continue
            for effect, (count, delay) in effects.items():
                if count < cfg.min_causal_count:
                    continue
                probability = count / total
                if probability <= cfg.min_causal_probability:
                    continue
                pattern = CausalPattern(
                    cause=cause,
                    effect=effect,
                    probability=probability,
                    observation_count=count,
                    avg_delay=delay / count,
                    description=(f"When '{cause}' happens, '{effect}' follows "
                                 f"({int(probability * 100)}% of the time)"),
                )
                found[(cause, effect)] = pattern
                if (cause, effect) not in self.causal_patterns:
                    logger.info("New causal pattern: %s", pattern.description)

        self.causal_patterns = found

    # =========================================================================
    # SEQUENCE
    # =========================================================================

    def _find_sequence_patterns(self) -> None:
        cfg = self.config
        keys = [event.key for event in self.history]

        for length in range(cfg.min_sequence_length, cfg.max_sequence_length + 1):
            counts: Dict[Tuple[str, ...], int] = {}
            for i in range(len(keys) - length + 1):
                seq = tuple(keys[i:i + length])
                counts[seq] = counts.get(seq, 0) + 1

            for seq, occurrences in counts.items():
                if occurrences < cfg.min_sequence_occurrences:
                    continue
                seq_id = " -> ".join(seq)
                existing = self.sequence_patterns.get(seq_id)
                if existing is not None:
                    existing.occurrences = occurrences
                    existing.confidence = min(1.0, occurrences * 0.2)
                elif len(self.sequence_patterns) < cfg.max_sequence_patterns:
                    self.sequence_patterns[seq_id] = SequencePattern(
                        sequence=seq,
                        occurrences=occurrences,
                        confidence=min(1.0, occurrences * 0.2),
                    )
                    logger.debug("New sequence pattern: %s", seq_id)

    # =========================================================================
    # PREDICTION / QUERIES
    # =========================================================================

    def predict_next(self, event_key: str) -> List[Prediction]:
        """Effects that usually follow ``event_key`` (full key or data part)."""
        predictions = [
            Prediction(p.effect, p.probability, f"Usually follows {p.cause}")
            for p in self.causal_patterns.values()
            if p.cause == event_key or p.cause.endswith(":" + event_key)
        ]
        predictions.sort(key=lambda p: -p.probability)
        return predictions

    def get_causal_pattern(self, cause: str, effect: str) -> Optional[CausalPattern]:
        return self.causal_patterns.get((cause, effect))

    def get_temporal_patterns(self) -> List[TemporalPattern]:
        return list(self.temporal_patterns.values())

    def get_causal_patterns(self) -> List[CausalPattern]:
        return list(self.causal_patterns.values())

    def get_sequence_patterns(self) -> List[SequencePattern]:
        return list(self.sequence_patterns.values())

    def get_status(self) -> PatternStatus:
        return PatternStatus(
            event_count=len(self.history),
            temporal=len(self.temporal_patterns),
            causal=len(self.causal_patterns),
            sequence=len(self.sequence_patterns),
        )

    # =========================================================================
    # STATE
    # =========================================================================

    def to_state(self) -> Dict:
        return {
            'history': [
                {'type': e.type, 'data': e.data, 'timestamp': e.timestamp, 'context': e.context}
                for e in self.history
            ],
            'co_occurrence': {
                cause: {effect: list(c) for effect, c in effects.items()}
                for cause, effects in self._co_occurrence.items()
            },
            'sequences': [
                {'sequence': list(p.sequence), 'occurrences': p.occurrences}
                for p in self.sequence_patterns.values()
            ],
        }

    @classmethod
    def from_state(cls, state: Dict, config: Optional[PatternConfig] = None,
                   clock: Optional[Clock] = None) -> 'EventPatternAnalyzer':
        analyzer = cls(config=config, clock=clock)
        for data in state.get('history', []):
            analyzer.history.append(Event(**data))
        analyzer._co_occurrence = {
            cause: {effect: list(c) for effect, c in effects.items()}
            for cause, effects in state.get('co_occurrence', {}).items()
        }
        for data in state.get('sequences', []):
            seq = tuple(data['sequence'])
            occurrences = data['occurrences']
            analyzer.sequence_patterns[" -> ".join(seq)] = SequencePattern(
                seq, occurrences, min(1.0, occurrences * 0.2))
        # Temporal and causal registries are derived from the history
        if len(analyzer.history) >= analyzer.config.min_events_for_analysis:
            analyzer._find_temporal_patterns()
            analyzer._find_causal_patterns()
        return analyzer
