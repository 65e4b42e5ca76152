# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""FX rate entity."""

from __future__ import annotations

from dataclasses import dataclass

from marketfeed_api.domain.entities.base import BaseEntity


@dataclass(frozen=True, slots=True)
class FxRate(BaseEntity):
    """Units of ``quote`` per one unit of ``base``."""

    base: str
    quote: str
    rate: float
    timestamp_ms: int

    def __post_init__(self) -> None:
        if self.rate <= 0:
            raise ValueError("FxRate.rate must be > 0")
