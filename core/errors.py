"""Error taxonomy for graph construction and synthesis."""

from __future__ import annotations


class TrailAlertError(Exception):
    """Base class for terminal build failures."""

    exit_code = 1

    def __init__(self, message: str, exit_code: int | None = None) -> None:
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigurationError(TrailAlertError):
    """A declaration is malformed or misses a required attribute."""

    exit_code = 2


class DependencyError(TrailAlertError):
    """An edge or reference points at nothing, or edges form a cycle."""

    exit_code = 3


class SynthesisError(TrailAlertError):
    """The rendering step rejected the graph."""

    exit_code = 4


__all__ = ["TrailAlertError", "ConfigurationError", "DependencyError", "SynthesisError"]
