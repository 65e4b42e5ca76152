# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""
Base HTTP Schema (Adapters Layer)

Purpose:
    Canonical Pydantic base for all adapter-layer HTTP schemas.
    Enforces strict config and camelCase wire names.

Layer: adapters/schemas/http

Notes:
    - Transport-facing only. Application code must not import from this module.
    - Field names are snake_case in Python and camelCase on the wire.
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseHTTPSchema(BaseModel):
    """Base class for all HTTP-facing schemas.

    Attributes:
        model_config: Pydantic v2 ``ConfigDict`` with strict validation,
            camelCase aliases and JSON-safe float handling.
    """

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        str_strip_whitespace=True,
        alias_generator=to_camel,
        ser_json_inf_nan="null",
        use_enum_values=True,
    )

    def model_dump_http(self, **kwargs: Any) -> dict[str, Any]:
        """Return a JSON-serializable dict suitable for HTTP responses.

        Wire aliases are used and ``None`` fields are dropped unless the
        caller overrides either setting.

        Args:
            **kwargs: Optional Pydantic dump settings.

        Returns:
            dict[str, Any]: Fully JSON-serializable representation.
        """
        kwargs.setdefault("by_alias", True)
        kwargs.setdefault("exclude_none", True)
        return self.model_dump(mode="json", **kwargs)
