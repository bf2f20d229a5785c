"""Shared error root for all bounded contexts.

Terrain and propagation-model failures both derive from DomainError so that
callers of the coverage engine can handle any failure with one except clause.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base error for every domain operation."""
