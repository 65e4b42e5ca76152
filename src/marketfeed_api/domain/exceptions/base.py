# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""
Base Domain Exceptions.

Summary:
    Canonical base class for domain/application exceptions. Every subclass
    carries a stable ``code`` so failures can be rendered as data (per-ID
    ``errorCode``) or mapped to HTTP at the boundary.

Layer:
    domain/exceptions
"""
from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Base class for all domain/application exceptions."""

    code: str = "DOMAIN_ERROR"

    def __init__(self, message: str = "", *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = details or {}

    def describe(self) -> str:
        """Return a human-readable description suitable for a per-ID error field."""
        message = str(self)
        return message or self.code.replace("_", " ").lower()
