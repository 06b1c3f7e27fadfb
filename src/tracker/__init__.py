"""Orchestration over the scoring engine, generator and store."""

from .session import CredibilitySession

__all__ = ["CredibilitySession"]
