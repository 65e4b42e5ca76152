# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Configuration package."""

from marketfeed_api.config.settings import Environment, Settings, get_settings

__all__ = ["Environment", "Settings", "get_settings"]
