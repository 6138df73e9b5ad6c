"""Policy validation and evaluation helpers."""

from .checks import expected_cases, run_checks
from .simulator import PolicySimulator, SimulationCase
from .validation import Finding, audit_graph, validate_statement

__all__ = [
    "Finding",
    "PolicySimulator",
    "SimulationCase",
    "audit_graph",
    "expected_cases",
    "run_checks",
    "validate_statement",
]
