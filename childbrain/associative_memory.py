"""
Associative Memory - Hebbian concept graph

Neurons that fire together, wire together:
- NEURONS are named concepts with an activation level (0-1)
- SYNAPSES are directed weighted links (0-1) between concepts
- FIRING happens when activation crosses the threshold (edge-triggered)
- LEARNING strengthens links between co-active neurons with
  diminishing returns: dw = learning_rate * (1 - w)
- DECAY weakens activations every pass and idle synapses after a day

Storage is an arena: neurons are addressed by integer handle, synapses by
(source handle, target handle). String ids only exist at the API surface,
so the graph holds no object cycles.

Repeated activation sequences (length 2-5) in the recent history become
NeuralPatterns, which drive next-concept prediction.
"""

import logging
from collections import deque
from dataclasses import dataclass, field, asdict
from typing import Deque, Dict, List, Optional, Set, Tuple

from .clock import Clock, system_clock
from .config import MemoryConfig

logger = logging.getLogger(__name__)


@dataclass
class Neuron:
    """A concept node."""
    handle: int
    id: str
    type: str = "concept"           # sensory, concept, action, emotion, ...
    label: str = ""
    activation: float = 0.0
    bias: float = 0.0
    last_fired: int = 0
    fire_count: int = 0
    is_active: bool = False
    created: int = 0


@dataclass
class Synapse:
    """Directed link between two neuron handles."""
    source: int
    target: int
    weight: float
    last_activated: int = 0
    activation_count: int = 0


@dataclass
class NeuralPattern:
    """A repeated activation sequence."""
    sequence: Tuple[str, ...]
    occurrences: int = 0
    confidence: float = 0.0
    last_seen: int = 0

    @property
    def id(self) -> str:
        return "->".join(self.sequence)


@dataclass
class Association:
    concept: str
    label: str
    strength: float


@dataclass
class MemoryStatus:
    neuron_count: int
    synapse_count: int
    pattern_count: int
    active_neurons: int
    strongest_connections: List[str] = field(default_factory=list)


class AssociativeMemory:
    """
    Weighted concept graph with Hebbian reinforcement.

    Not thread-safe on its own; the Agent serializes writers.
    """

    def __init__(self, config: Optional[MemoryConfig] = None, clock: Optional[Clock] = None):
        self.config = config or MemoryConfig()
        self.clock = clock or system_clock

        # Arena
        self._neurons: Dict[int, Neuron] = {}
        self._handles: Dict[str, int] = {}
        self._next_handle: int = 0

        # Synapses keyed by (source, target) plus outbound index
        self._synapses: Dict[Tuple[int, int], Synapse] = {}
        self._outbound: Dict[int, Set[int]] = {}
        self._inbound: Dict[int, Set[int]] = {}

        self.recent_activations: Deque[str] = deque(maxlen=self.config.activation_history)
        self.patterns: Dict[str, NeuralPattern] = {}

    # =========================================================================
    # NEURONS
    # =========================================================================

    def get_or_create_neuron(self, neuron_id: str, neuron_type: str = "concept",
                             label: Optional[str] = None) -> Neuron:
        handle = self._handles.get(neuron_id)
        if handle is not None:
            return self._neurons[handle]

        if len(self._neurons) >= self.config.max_neurons:
            self._make_room()

        now = self.clock()
        neuron = Neuron(
            handle=self._next_handle,
            id=neuron_id,
            type=neuron_type,
            label=label if label is not None else neuron_id,
            created=now,
        )
        self._next_handle += 1
        self._neurons[neuron.handle] = neuron
        self._handles[neuron_id] = neuron.handle
        self._outbound[neuron.handle] = set()
        self._inbound[neuron.handle] = set()
        logger.debug("New neuron: %s (%s)", neuron_id, neuron.label)
        return neuron

    def get_neuron(self, neuron_id: str) -> Optional[Neuron]:
        handle = self._handles.get(neuron_id)
        return self._neurons.get(handle) if handle is not None else None

    def _make_room(self) -> None:
        """Evict weak neurons; fall back to the single least-used one."""
        removed = self.prune_weak_neurons()
        if len(self._neurons) < self.config.max_neurons:
            return
        victim = min(
            self._neurons.values(),
            key=lambda n: (n.fire_count, n.last_fired, n.created, n.handle),
        )
        self._remove_neuron(victim.handle)
        logger.debug("Evicted least-used neuron %s (%d weak pruned)", victim.id, removed)

    def prune_weak_neurons(self) -> int:
        """
        Remove neurons that never fired and are old, or fired fewer than
        three times and have been idle past the eviction age.
        """
        cutoff = self.clock() - self.config.eviction_age_ms
        weak = [
            n.handle for n in self._neurons.values()
            if (n.fire_count == 0 and n.created < cutoff) or
               (n.fire_count < 3 and max(n.last_fired, n.created) < cutoff)
        ]
        for handle in sorted(weak):
            self._remove_neuron(handle)
        if weak:
            logger.debug("Pruned %d weak neurons", len(weak))
        return len(weak)

    def _remove_neuron(self, handle: int) -> None:
        neuron = self._neurons.pop(handle)
        del self._handles[neuron.id]
        for target in self._outbound.pop(handle, set()):
            self._synapses.pop((handle, target), None)
            self._inbound.get(target, set()).discard(handle)
        for source in self._inbound.pop(handle, set()):
            self._synapses.pop((source, handle), None)
            self._outbound.get(source, set()).discard(handle)
        stale = [pid for pid, p in self.patterns.items() if neuron.id in p.sequence]
        for pid in stale:
            del self.patterns[pid]

    # =========================================================================
    # SYNAPSES
    # =========================================================================

    def _get_or_create_synapse(self, source: int, target: int) -> Synapse:
        synapse = self._synapses.get((source, target))
        if synapse is None:
            synapse = Synapse(source=source, target=target, weight=self.config.initial_weight)
            self._synapses[(source, target)] = synapse
            self._outbound[source].add(target)
            self._inbound[target].add(source)
        return synapse

    def get_weight(self, from_id: str, to_id: str) -> float:
        """Synapse weight from one concept to another (0 if unlinked)."""
        source = self._handles.get(from_id)
        target = self._handles.get(to_id)
        synapse = self._synapses.get((source, target))
        return synapse.weight if synapse else 0.0

    def _strengthen(self, source: int, target: int, now: int) -> None:
        synapse = self._get_or_create_synapse(source, target)
        increase = self.config.learning_rate * (1.0 - synapse.weight)
        synapse.weight = min(1.0, synapse.weight + increase)
        synapse.last_activated = now
        synapse.activation_count += 1

    # =========================================================================
    # ACTIVATION
    # =========================================================================

    def activate(self, neuron_id: str, intensity: float) -> None:
        """
        Add activation to a concept (created on first reference).

        Firing spreads ``activation * weight`` along outbound synapses,
        breadth first; each neuron fires at most once until it decays
        below threshold again. Hebbian reinforcement runs once the wave has
        settled, deepest firing first.
        """
        start = self.get_or_create_neuron(neuron_id)
        pending: Deque[Tuple[int, float]] = deque([(start.handle, intensity)])
        fired: List[Neuron] = []

        while pending:
            handle, amount = pending.popleft()
            neuron = self._neurons.get(handle)
            if neuron is None:
                continue

            neuron.activation = max(0.0, min(1.0, neuron.activation + amount))

            if neuron.activation >= self.config.firing_threshold and not neuron.is_active:
                self._fire(neuron)
                fired.append(neuron)
                for target in sorted(self._outbound[handle]):
                    propagated = neuron.activation * self._synapses[(handle, target)].weight
                    if propagated > 0:
                        pending.append((target, propagated))

            self._record_activation(neuron.id)

        now = self.clock()
        for neuron in reversed(fired):
            if neuron.handle in self._neurons:
                self._hebbian_learning(neuron, now)

    def _fire(self, neuron: Neuron) -> None:
        now = self.clock()
        neuron.is_active = True
        neuron.last_fired = now
        neuron.fire_count += 1
        logger.debug("Neuron fired: %s", neuron.id)

    def _hebbian_learning(self, firing: Neuron, now: int) -> None:
        """Strengthen links to every other neuron active in the recent window."""
        window = list(self.recent_activations)[-self.config.hebbian_window:]
        partners: List[int] = []
        for other_id in reversed(window):
            handle = self._handles.get(other_id)
            if handle is None or handle == firing.handle or handle in partners:
                continue
            if self._neurons[handle].is_active:
                partners.append(handle)

        for handle in partners:
            self._strengthen(firing.handle, handle, now)
            self._strengthen(handle, firing.handle, now)

    def _record_activation(self, neuron_id: str) -> None:
        self.recent_activations.append(neuron_id)
        self._detect_patterns()

    # =========================================================================
    # PATTERN RECOGNITION
    # =========================================================================

    def _detect_patterns(self) -> None:
        """Register the recent suffixes that already occurred in the window."""
        history = list(self.recent_activations)
        cfg = self.config
        if len(history) < cfg.min_pattern_length * 2:
            return

        now = self.clock()
        for length in range(cfg.min_pattern_length, cfg.max_pattern_length + 1):
            if len(history) < length * 2:
                break
            suffix = tuple(history[-length:])
            if self._count_occurrences(history, suffix) < 2:
                continue

            pattern_id = "->".join(suffix)
            pattern = self.patterns.get(pattern_id)
            if pattern is None:
                pattern = NeuralPattern(sequence=suffix)
                self.patterns[pattern_id] = pattern
                logger.info("New activation pattern: %s", pattern_id)
            pattern.occurrences += 1
            pattern.last_seen = now
            pattern.confidence = min(1.0, pattern.occurrences * 0.1)

    @staticmethod
    def _count_occurrences(history: List[str], sequence: Tuple[str, ...]) -> int:
        size = len(sequence)
        return sum(
            1 for i in range(len(history) - size + 1)
            if tuple(history[i:i + size]) == sequence
        )

    def predict_next(self) -> Optional[str]:
        """
        Predict the concept that follows the last two activations.

        Patterns matching both of them beat patterns matching only the
        last one; then the highest confidence wins.
        """
        if len(self.recent_activations) < 2:
            return None
        last1 = self.recent_activations[-1]
        last2 = self.recent_activations[-2]

        best: Optional[str] = None
        best_score: Tuple[bool, float] = (False, 0.0)
        for pattern in self.patterns.values():
            seq = pattern.sequence
            if len(seq) < 2 or seq[-2] != last1:
                continue
            score = (len(seq) >= 3 and seq[-3] == last2, pattern.confidence)
            if best is None or score > best_score:
                best = seq[-1]
                best_score = score
        return best

    # =========================================================================
    # DECAY
    # =========================================================================

    def apply_decay(self) -> None:
        """Fade activations; weaken synapses idle for longer than a day."""
        cfg = self.config
        now = self.clock()

        for neuron in self._neurons.values():
            if neuron.activation > 0:
                neuron.activation = max(0.0, neuron.activation - cfg.decay_rate)
                if neuron.activation < cfg.firing_threshold:
                    neuron.is_active = False

        for synapse in self._synapses.values():
            if now - synapse.last_activated > cfg.synapse_idle_ms:
                synapse.weight = max(0.0, synapse.weight - cfg.decay_rate * 0.1)

    # =========================================================================
    # ASSOCIATION
    # =========================================================================

    def associate(self, concept1: str, concept2: str, strength: float) -> None:
        """Directly link two concepts both ways ("dog" <-> "bark")."""
        n1 = self.get_or_create_neuron(concept1)
        n2 = self.get_or_create_neuron(concept2)
        if n1.handle == n2.handle:
            return
        now = self.clock()
        for source, target in ((n1.handle, n2.handle), (n2.handle, n1.handle)):
            synapse = self._get_or_create_synapse(source, target)
            synapse.weight = max(0.0, min(1.0, synapse.weight + strength))
            synapse.last_activated = now

    def get_associations(self, concept_id: str) -> List[Association]:
        """Strong outbound links of a concept, strongest first."""
        handle = self._handles.get(concept_id)
        if handle is None:
            return []
        associations = []
        for target in self._outbound[handle]:
            synapse = self._synapses[(handle, target)]
            if synapse.weight > self.config.association_threshold:
                other = self._neurons[target]
                associations.append(Association(other.id, other.label, synapse.weight))
        associations.sort(key=lambda a: (-a.strength, a.concept))
        return associations

    # =========================================================================
    # STATUS
    # =========================================================================

    @property
    def neuron_count(self) -> int:
        return len(self._neurons)

    @property
    def synapse_count(self) -> int:
        return len(self._synapses)

    def get_status(self) -> MemoryStatus:
        strongest = [
            f"{self._neurons[s.source].id} -> {self._neurons[s.target].id}"
            for s in self._synapses.values()
            if s.weight > self.config.strong_connection_threshold
        ]
        return MemoryStatus(
            neuron_count=len(self._neurons),
            synapse_count=len(self._synapses),
            pattern_count=len(self.patterns),
            active_neurons=sum(1 for n in self._neurons.values() if n.is_active),
            strongest_connections=strongest,
        )

    def to_state(self) -> Dict:
        return {
            'next_handle': self._next_handle,
            'neurons': [asdict(n) for n in self._neurons.values()],
            'synapses': [asdict(s) for s in self._synapses.values()],
            'patterns': [
                {'sequence': list(p.sequence), 'occurrences': p.occurrences,
                 'confidence': p.confidence, 'last_seen': p.last_seen}
                for p in self.patterns.values()
            ],
            'recent_activations': list(self.recent_activations),
        }

    @classmethod
    def from_state(cls, state: Dict, config: Optional[MemoryConfig] = None,
                   clock: Optional[Clock] = None) -> 'AssociativeMemory':
        memory = cls(config=config, clock=clock)
        for data in state.get('neurons', []):
            neuron = Neuron(**data)
            memory._neurons[neuron.handle] = neuron
            memory._handles[neuron.id] = neuron.handle
            memory._outbound[neuron.handle] = set()
            memory._inbound[neuron.handle] = set()
        for data in state.get('synapses', []):
            synapse = Synapse(**data)
            if synapse.source in memory._neurons and synapse.target in memory._neurons:
                memory._synapses[(synapse.source, synapse.target)] = synapse
                memory._outbound[synapse.source].add(synapse.target)
                memory._inbound[synapse.target].add(synapse.source)
        for data in state.get('patterns', []):
            pattern = NeuralPattern(
                sequence=tuple(data['sequence']),
                occurrences=data.get('occurrences', 0),
                confidence=data.get('confidence', 0.0),
                last_seen=data.get('last_seen', 0),
            )
            memory.patterns[pattern.id] = pattern
        memory.recent_activations.extend(state.get('recent_activations', []))
        memory._next_handle = max(
            state.get('next_handle', 0),
            max(memory._neurons, default=-1) + 1,
        )
        return memory
