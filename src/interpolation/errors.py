"""Errors raised by the estimators and distribution helpers."""
from __future__ import annotations


class ContractViolation(ValueError):
    """A caller broke a length or shape precondition (e.g. weights vs. query length)."""


class DegenerateDistribution(ValueError):
    """A distribution with zero total mass cannot be normalized."""
