# Copyright (c) Marketfeed.
# SPDX-License-Identifier: MIT
"""Presenter utilities and canonical envelope helpers.

Purpose:
    Thin helpers used by routers to shape HTTP bodies and headers
    consistently.

Responsibilities:
    * Pair a response body with the headers it needs (``PresentResult``).
    * Build ``ErrorEnvelope`` instances.
    * Apply standard headers such as ``X-Request-ID`` and shared-cache
      ``Cache-Control`` directives.

Layer:
    adapters/presenters
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from marketfeed_api.adapters.schemas.http.envelopes import ErrorEnvelope, ErrorObject


T = TypeVar("T")


def cache_control(*, s_maxage: int, stale_while_revalidate: int) -> str:
    """Return a shared-cache ``Cache-Control`` value."""
    return f"public, s-maxage={s_maxage}, stale-while-revalidate={stale_while_revalidate}"


@dataclass(slots=True)
class PresentResult(Generic[T]):
    """Presentation result.

    Attributes:
        body: Response body (schema instance or list of instances).
        headers: Extra HTTP headers to apply.
        status_code: Optional HTTP status override.
    """

    body: T
    headers: Mapping[str, str]
    status_code: int | None = None


class BasePresenter:
    """Base presenter providing header and error-envelope helpers."""

    @staticmethod
    def base_headers(trace_id: str | None, *, cache: str | None = None) -> dict[str, str]:
        headers: dict[str, str] = {}
        if trace_id:
            headers["X-Request-ID"] = trace_id
        if cache:
            headers["Cache-Control"] = cache
        return headers

    def present_error(
        self,
        *,
        code: str,
        http_status: int,
        message: str,
        trace_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> PresentResult[ErrorEnvelope]:
        """Build an ErrorEnvelope and attach ``X-Request-ID``."""
        err = ErrorObject(
            code=code,
            http_status=http_status,
            message=message,
            details=details or {},
            trace_id=trace_id,
        )
        return PresentResult(
            body=ErrorEnvelope(error=err),
            headers=self.base_headers(trace_id),
            status_code=int(http_status),
        )
