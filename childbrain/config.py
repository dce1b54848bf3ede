"""
Configuration for the survival/learning core.

All constants are exposed here for easy experimentation.
Use create_agent(**overrides) with ``section__field=value`` keys
to customize any parameter, or load a JSON file with AgentConfig.from_json.
"""

import json
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any, Dict, Optional

from .clock import SECOND_MS, MINUTE_MS, DAY_MS
from .errors import ConfigError


@dataclass
class SurvivalConfig:
    """Resource drain and drive dynamics of one generation."""
    # ==========================================================================
    # RESOURCE DRAIN
    # ==========================================================================
    drain_interval_ms: int = 10 * SECOND_MS
    energy_drain: float = 0.1
    death_threshold: float = 0.0

    # ==========================================================================
    # SOCIAL / STABILITY DRIFT (one step per drain interval)
    # ==========================================================================
    loneliness_onset_ms: int = MINUTE_MS
    loneliness_rise: float = 0.1
    comfort_decay: float = 0.05
    fear_instability_threshold: float = 50.0
    loneliness_instability_threshold: float = 70.0
    instability_drain: float = 0.1

    # ==========================================================================
    # STIMULUS RESPONSE
    # ==========================================================================
    curiosity_threshold: float = 30.0
    exploration_cost: float = 0.5
    loneliness_relief_per_intensity: float = 10.0
    pattern_conflict_penalty: float = 1.0

    # ==========================================================================
    # NEWBORN BASELINE (restored on rebirth)
    # ==========================================================================
    baseline_curiosity: float = 80.0
    baseline_hunger: float = 0.0
    baseline_fear: float = 10.0
    baseline_comfort: float = 50.0
    baseline_loneliness: float = 30.0
    default_trust: float = 50.0
    death_fear_strength: float = 100.0


@dataclass
class MemoryConfig:
    """Associative concept graph."""
    initial_weight: float = 0.1
    learning_rate: float = 0.1
    decay_rate: float = 0.01
    firing_threshold: float = 0.5
    max_neurons: int = 10000
    eviction_age_ms: int = 7 * DAY_MS
    synapse_idle_ms: int = DAY_MS
    activation_history: int = 50
    hebbian_window: int = 10
    min_pattern_length: int = 2
    max_pattern_length: int = 5
    association_threshold: float = 0.2
    strong_connection_threshold: float = 0.7


@dataclass
class PatternConfig:
    """Discrete event-pattern analysis."""
    max_history: int = 1000
    co_occurrence_window: int = 10
    min_events_for_analysis: int = 10
    min_temporal_occurrences: int = 3
    min_regularity: float = 0.5
    min_temporal_interval_ms: int = MINUTE_MS
    min_causal_count: int = 3
    min_causal_probability: float = 0.5
    min_sequence_length: int = 3
    max_sequence_length: int = 5
    min_sequence_occurrences: int = 2
    max_sequence_patterns: int = 50


@dataclass
class EvolutionConfig:
    """Cross-generation inheritance increments."""
    death_fear_increment: float = 20.0
    starvation_energy_threshold: float = 10.0
    hunger_fear_increment: float = 10.0
    energy_efficiency_increment: float = 5.0
    lonely_death_threshold: float = 80.0
    social_drive_increment: float = 10.0
    fearful_death_threshold: float = 80.0
    caution_increment: float = 5.0
    father_bond_threshold: float = 70.0
    trait_baseline: float = 50.0


@dataclass
class PersistenceConfig:
    save_directory: Optional[str] = None
    auto_save_interval: float = 300.0
    max_backups: int = 5


@dataclass
class WatchdogConfig:
    tick_interval: float = 1.0
    backup_interval: float = 300.0
    low_power_energy: float = 10.0
    low_power_multiplier: float = 4.0


@dataclass
class AgentConfig:
    """Aggregate configuration for an Agent and its collaborators."""
    survival: SurvivalConfig = field(default_factory=SurvivalConfig)
    memory: MemoryConfig = field(default_factory=MemoryConfig)
    patterns: PatternConfig = field(default_factory=PatternConfig)
    evolution: EvolutionConfig = field(default_factory=EvolutionConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    watchdog: WatchdogConfig = field(default_factory=WatchdogConfig)

    # Ticks between associative-memory decay passes
    decay_every: int = 10

    def apply_overrides(self, **overrides: Any) -> 'AgentConfig':
        """
        Apply ``section__field=value`` overrides in place.

        Top-level fields (``decay_every``) are addressed without a section.
        """
        for key, value in overrides.items():
            if '__' in key:
                section_name, field_name = key.split('__', 1)
                section = getattr(self, section_name, None)
                if section is None or not hasattr(section, '__dataclass_fields__'):
                    raise ConfigError(f"unknown config section: {section_name}")
                if field_name not in section.__dataclass_fields__:
                    raise ConfigError(f"unknown config field: {key}")
                setattr(section, field_name, value)
            else:
                if key not in self.__dataclass_fields__ or _is_section(getattr(self, key)):
                    raise ConfigError(f"unknown config field: {key}")
                setattr(self, key, value)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AgentConfig':
        config = cls()
        for f in fields(cls):
            if f.name not in data:
                continue
            current = getattr(config, f.name)
            if _is_section(current):
                section_data = data[f.name] or {}
                unknown = set(section_data) - set(current.__dataclass_fields__)
                if unknown:
                    raise ConfigError(f"unknown fields in {f.name}: {sorted(unknown)}")
                setattr(config, f.name, type(current)(**section_data))
            else:
                setattr(config, f.name, data[f.name])
        return config

    @classmethod
    def from_json(cls, path: str) -> 'AgentConfig':
        try:
            with open(path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"cannot read config {path}: {e}") from e
        return cls.from_dict(data)

    def save_json(self, path: str) -> None:
        Path(path).write_text(json.dumps(self.to_dict(), indent=2))


def _is_section(value: Any) -> bool:
    return hasattr(value, '__dataclass_fields__')
