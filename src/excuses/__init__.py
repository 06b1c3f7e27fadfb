"""Excuse generation provider."""

from .generator import (
    ExcuseGenerator,
    GenerationError,
    GenerationRequest,
    effective_risk_tolerance,
    parse_excuse,
)

__all__ = [
    "ExcuseGenerator",
    "GenerationError",
    "GenerationRequest",
    "effective_risk_tolerance",
    "parse_excuse",
]
