"""HTTP client for the external strategy execution engine."""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

from src.config import settings
from src.engine.strategy.errors import (
    StrategyEngineError,
    StrategyEngineRejectedError,
    StrategyEngineTransportError,
)
from src.engine.strategy.models import StrategyConfig, mint_strategy_id
from src.engine.strategy.serializer import from_wire_format, to_wire_format
from src.util.logger import log_api, logger

__all__ = [
    "OperationResponse",
    "RemoteTemplate",
    "RemoteTemplateList",
    "StrategyCreateResponse",
    "StrategyEngineClient",
    "StrategyEngineError",
    "StrategyEngineRejectedError",
    "StrategyEngineTransportError",
    "StrategyListItem",
    "StrategyListPage",
]


class StrategyCreateResponse(BaseModel):
    strategy_id: str = ""
    success: bool = True
    message: str = ""


class StrategyListItem(BaseModel):
    """Summary row; engine-specific columns are kept as extras."""

    model_config = ConfigDict(extra="allow")

    strategy_id: str
    name: str = ""
    description: str = ""
    category: str = ""
    author: str = ""
    version: str = ""


class StrategyListPage(BaseModel):
    strategies: list[StrategyListItem] = Field(default_factory=list)
    total: int = 0
    limit: int | None = None
    offset: int | None = None


class OperationResponse(BaseModel):
    success: bool = True
    message: str = ""
    strategy_id: str | None = None


class RemoteTemplate(BaseModel):
    """Template stored on the engine side; not the same as the built-in library."""

    model_config = ConfigDict(extra="allow")

    template_id: str
    name: str = ""
    category: str = ""
    description: str = ""
    difficulty: str = ""
    config_template: dict[str, Any] = Field(default_factory=dict)
    created_at: str | None = None


class RemoteTemplateList(BaseModel):
    templates: list[RemoteTemplate] = Field(default_factory=list)
    total: int = 0


def _body_message(body: Any) -> str | None:
    if not isinstance(body, dict):
        return None
    for key in ("message", "detail", "error"):
        value = body.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


def _unwrap_envelope(body: Any) -> Any:
    """Unwrap ``{code, message, data}`` and surface business errors verbatim."""
    if not isinstance(body, dict):
        return body

    code = body.get("code")
    if isinstance(code, int) and not isinstance(code, bool) and code != 200:
        raise StrategyEngineRejectedError(_body_message(body) or "Strategy engine request failed.", code=code)
    if body.get("error"):
        raise StrategyEngineRejectedError(_body_message(body) or "Strategy engine request failed.")
    if "data" in body:
        return body["data"]
    return body


def _raise_if_unsuccessful(response: OperationResponse | StrategyCreateResponse) -> None:
    if not response.success:
        raise StrategyEngineRejectedError(response.message or "Strategy engine rejected the request.")


class StrategyEngineClient:
    """Create/list/get/update/delete strategy documents on the engine.

    Calls are never retried; a timeout surfaces as a transport error and the
    caller decides whether to resubmit.
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = (base_url or settings.strategy_engine_url).rstrip("/")
        self.timeout_seconds = timeout_seconds or settings.strategy_engine_timeout_seconds
        self._client = client or httpx.AsyncClient(timeout=self.timeout_seconds)
        self._owns_client = client is None

    async def __aenter__(self) -> StrategyEngineClient:
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        query = {key: value for key, value in (params or {}).items() if value is not None}
        try:
            response = await self._client.request(
                method,
                url,
                params=query or None,
                json=json_body,
                timeout=self.timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            logger.warning("Strategy engine %s %s timed out", method, path)
            raise StrategyEngineTransportError(
                f"Strategy engine did not respond within {self.timeout_seconds:g}s."
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("Strategy engine %s %s failed: %s", method, path, exc)
            raise StrategyEngineTransportError(f"Strategy engine is unreachable: {exc}") from exc

        log_api(method, path, response.status_code)
        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_error:
            message = _body_message(body) or f"Strategy engine returned HTTP {response.status_code}."
            raise StrategyEngineTransportError(message, status_code=response.status_code)
        if body is None:
            raise StrategyEngineTransportError(
                "Strategy engine returned a non-JSON response.",
                status_code=response.status_code,
            )
        return _unwrap_envelope(body)

    async def create_strategy(self, config: StrategyConfig | dict[str, Any]) -> str:
        """POST a full document; returns the id the engine stored it under."""
        payload = to_wire_format(config) if isinstance(config, StrategyConfig) else dict(config)
        data = await self._request("POST", "/strategy", json_body=payload)
        result = StrategyCreateResponse.model_validate(data if isinstance(data, dict) else {})
        _raise_if_unsuccessful(result)
        return result.strategy_id or str(payload.get("strategy_id", ""))

    async def list_strategies(
        self,
        *,
        limit: int = 20,
        offset: int = 0,
        category: str | None = None,
        author: str | None = None,
    ) -> StrategyListPage:
        data = await self._request(
            "GET",
            "/strategy/list",
            params={"limit": limit, "offset": offset, "category": category, "author": author},
        )
        return StrategyListPage.model_validate(data if isinstance(data, dict) else {})

    async def get_strategy(self, strategy_id: str) -> StrategyConfig:
        data = await self._request("GET", f"/strategy/{strategy_id}")
        if not isinstance(data, dict):
            raise StrategyEngineTransportError("Strategy engine returned an unexpected strategy payload.")
        return from_wire_format(data)

    async def update_strategy(self, strategy_id: str, updates: dict[str, Any]) -> OperationResponse:
        data = await self._request("PUT", f"/strategy/{strategy_id}", json_body=updates)
        result = OperationResponse.model_validate(data if isinstance(data, dict) else {})
        _raise_if_unsuccessful(result)
        return result

    async def delete_strategy(self, strategy_id: str, *, hard_delete: bool = False) -> OperationResponse:
        data = await self._request(
            "DELETE",
            f"/strategy/{strategy_id}",
            params={"hard_delete": "true" if hard_delete else "false"},
        )
        result = OperationResponse.model_validate(data if isinstance(data, dict) else {})
        _raise_if_unsuccessful(result)
        return result

    async def set_strategy_active(self, strategy_id: str, active: bool) -> OperationResponse:
        """Enable or disable a stored strategy without touching its configuration."""
        return await self.update_strategy(strategy_id, {"is_active": bool(active)})

    async def create_from_template(
        self,
        template_id: str,
        *,
        name: str,
        author: str | None = None,
        strategy_id: str | None = None,
    ) -> str:
        """Ask the engine to copy one of its own templates into a new strategy."""
        body: dict[str, Any] = {
            "template_id": template_id,
            "strategy_id": strategy_id or mint_strategy_id(),
            "name": name,
        }
        if author is not None:
            body["author"] = author
        data = await self._request("POST", "/strategy/from_template", json_body=body)
        result = StrategyCreateResponse.model_validate(data if isinstance(data, dict) else {})
        _raise_if_unsuccessful(result)
        return result.strategy_id or body["strategy_id"]

    async def list_remote_templates(
        self,
        *,
        category: str | None = None,
        difficulty: str | None = None,
    ) -> RemoteTemplateList:
        data = await self._request(
            "GET",
            "/strategy/template/list",
            params={"category": category, "difficulty": difficulty},
        )
        return RemoteTemplateList.model_validate(data if isinstance(data, dict) else {})
