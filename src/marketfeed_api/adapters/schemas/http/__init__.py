# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""HTTP-facing pydantic schemas."""
