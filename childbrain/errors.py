"""
Error taxonomy for the survival/learning core.

Only protocol misuse and collaborator failures are exceptions here.
Running out of a resource is a state transition (see SurvivalState),
and conflicting world patterns cost stability instead of raising.
"""

from typing import Optional


class ChildBrainError(Exception):
    """Base class for every error raised by childbrain."""


class InvalidStimulusError(ChildBrainError, ValueError):
    """A stimulus or event with a missing type or data field."""

    def __init__(self, stimulus_type: Optional[str], data: Optional[str]):
        self.stimulus_type = stimulus_type
        self.data = data
        super().__init__(f"invalid stimulus: type={stimulus_type!r} data={data!r}")


class PersistenceError(ChildBrainError):
    """A snapshot store could not read or write a blob."""


class RebirthError(ChildBrainError):
    """prepare_rebirth() called without exactly one pending death."""


class ConfigError(ChildBrainError, ValueError):
    """Unknown or malformed configuration override."""


def validate_stimulus(stimulus_type: Optional[str], data: Optional[str]) -> None:
    """Raise InvalidStimulusError unless both fields are non-empty strings."""
    if not isinstance(stimulus_type, str) or not stimulus_type.strip():
        raise InvalidStimulusError(stimulus_type, data)
    if not isinstance(data, str) or not data.strip():
        raise InvalidStimulusError(stimulus_type, data)
