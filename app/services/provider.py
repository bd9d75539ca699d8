"""Shared HTTP plumbing for the catalog provider clients."""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx
from pydantic import ValidationError

from ..errors import ProviderError
from ..provider_models import ProviderPage
from .rate_limiter import TokenBucket

logger = logging.getLogger(__name__)


class ProviderClient:
    """Base wrapper that rate-gates requests and normalises failures.

    Subclasses set ``name`` and ``label`` and call :meth:`_get_json`. Every
    failure mode (transport errors, HTTP errors, undecodable bodies) surfaces
    as :class:`ProviderError` so the discovery layer has one thing to catch.
    """

    name = "provider"
    label = "Provider"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        limiter: TokenBucket | None = None,
    ) -> None:
        self._client = http_client
        self._limiter = limiter

    def _default_params(self) -> dict[str, Any]:
        return {}

    def _headers(self) -> dict[str, str]:
        return {}

    def _ensure_configured(self) -> None:
        """Raise when the client lacks credentials it cannot work without."""

        return None

    def _fail(self, message: str, *, status_code: int | None = None) -> ProviderError:
        return ProviderError(self.name, message, status_code=status_code)

    async def _get_json(
        self, path: str, params: Mapping[str, Any] | None = None
    ) -> dict[str, Any]:
        """Issue a GET request and return the decoded JSON object."""

        self._ensure_configured()
        query: dict[str, Any] = {**self._default_params(), **(params or {})}
        query = {
            key: value for key, value in query.items() if value not in (None, "")
        }

        if self._limiter is not None:
            await self._limiter.acquire()

        try:
            response = await self._client.get(path, params=query, headers=self._headers())
        except httpx.HTTPError as exc:
            logger.warning("%s request to %s failed: %s", self.label, path, exc)
            raise self._fail(f"{self.label} API request failed: {exc}") from exc

        if response.status_code >= 400:
            logger.warning(
                "%s request to %s returned %s: %s",
                self.label,
                path,
                response.status_code,
                response.text[:200],
            )
            raise self._fail(
                f"{self.label} API error: {response.status_code} {response.reason_phrase}".strip(),
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            logger.warning("Unexpected non-JSON %s response for %s", self.label, path)
            raise self._fail(f"{self.label} API returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise self._fail(f"Unexpected {self.label} response structure")
        return data

    @staticmethod
    def _coerce_int(value: Any, *, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _build_page(
        self,
        model: type,
        raw_items: Any,
        *,
        total: Any,
        last_page: Any = None,
    ) -> ProviderPage:
        """Validate raw items into a :class:`ProviderPage`."""

        if raw_items is None:
            raw_items = []
        if not isinstance(raw_items, list):
            raise self._fail(f"Unexpected {self.label} result list")
        try:
            items = [model.model_validate(entry) for entry in raw_items]
        except ValidationError as exc:
            logger.warning("%s returned items we could not read: %s", self.label, exc)
            raise self._fail(f"{self.label} returned malformed results") from exc
        return ProviderPage(
            items=items,
            total=max(0, self._coerce_int(total)),
            last_page=self._coerce_int(last_page) or None,
        )
