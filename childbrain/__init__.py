# Child Brain - survival and associative learning core
#
# Born knowing nothing. Learns what hurts, what helps, who to trust.
# Dies when a resource runs out; the next generation inherits the fear.
#
# ARCHITECTURE:
# ├── survival_core.py       - Resources, drives, reactions, death, rebirth
# ├── associative_memory.py  - Hebbian concept graph + sequence prediction
# ├── event_patterns.py      - Temporal / causal / sequence event mining
# ├── evolution.py           - Cross-generation inheritance ledger
# ├── agent.py               - Wiring, locking, death -> rebirth swap
# ├── watchdog.py            - Background heartbeat + health checks
# └── persistence.py         - Snapshot stores with dill

# =============================================================================
# PRIMARY EXPORTS: Agent
# =============================================================================

from .agent import (
    Agent,
    AgentStatus,
    create_agent,  # Primary factory function
)

from .config import (
    AgentConfig,
    SurvivalConfig,
    MemoryConfig,
    PatternConfig,
    EvolutionConfig,
    PersistenceConfig,
    WatchdogConfig,
)

# =============================================================================
# CORE COMPONENTS
# =============================================================================

# Survival: resource/drive state machine
from .survival_core import (
    SurvivalCore,
    SurvivalState,
    Response,
    PrimitiveExpression,
    ReactionType,
    ExpressionType,
    InteractionType,
    DEATH_CAUSES,
)

# Associative memory: Hebbian concept graph
from .associative_memory import (
    AssociativeMemory,
    Neuron,
    Synapse,
    NeuralPattern,
    Association,
    MemoryStatus,
)

# Event patterns: discrete event log mining
from .event_patterns import (
    EventPatternAnalyzer,
    Event,
    TemporalPattern,
    CausalPattern,
    SequencePattern,
    Prediction,
    PatternStatus,
)

# Evolution: inheritance across death
from .evolution import (
    EvolutionLedger,
    EvolutionTraits,
    GeneticMemory,
    SelectionChallenge,
    EvolutionSummary,
)

# =============================================================================
# COLLABORATORS
# =============================================================================

from .persistence import (
    SnapshotStore,
    FileSnapshotStore,
    InMemorySnapshotStore,
    AgentPersistence,
)

from .watchdog import Watchdog, WatchdogStatus

from .clock import Clock, ManualClock, system_clock

from .errors import (
    ChildBrainError,
    InvalidStimulusError,
    PersistenceError,
    RebirthError,
    ConfigError,
)

__version__ = "1.0.0"

__all__ = [
    # Agent
    'Agent',
    'AgentStatus',
    'create_agent',
    'AgentConfig',
    'SurvivalConfig',
    'MemoryConfig',
    'PatternConfig',
    'EvolutionConfig',
    'PersistenceConfig',
    'WatchdogConfig',

    # Survival
    'SurvivalCore',
    'SurvivalState',
    'Response',
    'PrimitiveExpression',
    'ReactionType',
    'ExpressionType',
    'InteractionType',
    'DEATH_CAUSES',

    # Associative memory
    'AssociativeMemory',
    'Neuron',
    'Synapse',
    'NeuralPattern',
    'Association',
    'MemoryStatus',

    # Event patterns
    'EventPatternAnalyzer',
    'Event',
    'TemporalPattern',
    'CausalPattern',
    'SequencePattern',
    'Prediction',
    'PatternStatus',

    # Evolution
    'EvolutionLedger',
    'EvolutionTraits',
    'GeneticMemory',
    'SelectionChallenge',
    'EvolutionSummary',

    # Collaborators
    'SnapshotStore',
    'FileSnapshotStore',
    'InMemorySnapshotStore',
    'AgentPersistence',
    'Watchdog',
    'WatchdogStatus',
    'Clock',
    'ManualClock',
    'system_clock',

    # Errors
    'ChildBrainError',
    'InvalidStimulusError',
    'PersistenceError',
    'RebirthError',
    'ConfigError',
]
