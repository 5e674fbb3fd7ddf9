from __future__ import annotations

import json

import httpx
import pytest

from src.engine.strategy import StrategyConfigValidationError, instantiate, to_wire_format
from src.services.strategy_engine_client import (
    StrategyEngineClient,
    StrategyEngineRejectedError,
    StrategyEngineTransportError,
)

BASE_URL = "http://engine.test/api/v1"


def _client(handler) -> StrategyEngineClient:
    return StrategyEngineClient(
        base_url=BASE_URL,
        timeout_seconds=5,
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


@pytest.mark.asyncio
async def test_create_strategy_posts_wire_document() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"code": 200, "message": "success", "data": {"strategy_id": "s-1"}})

    draft = instantiate("bi_long")
    assert draft is not None
    draft.strategy_id = "s-1"

    strategy_id = await _client(handler).create_strategy(draft)

    assert strategy_id == "s-1"
    assert captured[0].method == "POST"
    assert str(captured[0].url) == f"{BASE_URL}/strategy"
    assert json.loads(captured[0].content) == to_wire_format(draft)


@pytest.mark.asyncio
async def test_create_strategy_falls_back_to_sent_id() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": True, "message": "ok"})

    strategy_id = await _client(handler).create_strategy({"strategy_id": "sent-id", "name": "x"})

    assert strategy_id == "sent-id"


@pytest.mark.asyncio
async def test_list_strategies_passes_filters_and_parses_page() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v1/strategy/list"
        assert dict(request.url.params) == {"limit": "5", "offset": "10", "author": "alice"}
        return httpx.Response(
            200,
            json={
                "code": 200,
                "message": "success",
                "data": {
                    "total": 11,
                    "limit": 5,
                    "offset": 10,
                    "strategies": [
                        {
                            "strategy_id": "s-11",
                            "name": "笔方向纯多头",
                            "author": "alice",
                            "version": "1.0.0",
                            "is_active": True,
                        }
                    ],
                },
            },
        )

    page = await _client(handler).list_strategies(limit=5, offset=10, author="alice")

    assert page.total == 11
    assert page.strategies[0].strategy_id == "s-11"
    assert page.strategies[0].model_extra == {"is_active": True}


@pytest.mark.asyncio
async def test_get_strategy_parses_config() -> None:
    draft = instantiate("multi_factor")
    assert draft is not None
    draft.strategy_id = "s-2"

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "GET"
        return httpx.Response(200, json=to_wire_format(draft))

    fetched = await _client(handler).get_strategy("s-2")

    assert fetched == draft


@pytest.mark.asyncio
async def test_get_strategy_with_malformed_document_raises_validation_error() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"name": "broken"})

    with pytest.raises(StrategyConfigValidationError):
        await _client(handler).get_strategy("s-3")


@pytest.mark.asyncio
async def test_update_and_delete_strategy() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"success": True, "message": f"{request.method} ok"})

    client = _client(handler)
    updated = await client.update_strategy("s-4", {"name": "renamed"})
    deleted = await client.delete_strategy("s-4", hard_delete=True)
    soft = await client.delete_strategy("s-4")

    assert updated.message == "PUT ok"
    assert json.loads(captured[0].content) == {"name": "renamed"}
    assert deleted.success is True
    assert captured[1].method == "DELETE"
    assert captured[1].url.params["hard_delete"] == "true"
    assert captured[2].url.params["hard_delete"] == "false"
    assert soft.message == "DELETE ok"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"code": 409, "message": "策略名称已存在"},
        {"error": "duplicate", "message": "策略名称已存在"},
        {"success": False, "message": "策略名称已存在"},
    ],
)
async def test_business_errors_raise_rejected_with_verbatim_message(body: dict) -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=body)

    with pytest.raises(StrategyEngineRejectedError, match="策略名称已存在"):
        await _client(handler).update_strategy("s-5", {"name": "dup"})


@pytest.mark.asyncio
async def test_http_error_status_is_a_transport_error() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"detail": "Strategy not found"})

    with pytest.raises(StrategyEngineTransportError) as exc_info:
        await _client(handler).get_strategy("missing")

    assert exc_info.value.status_code == 404
    assert str(exc_info.value) == "Strategy not found"


@pytest.mark.asyncio
async def test_http_error_without_body_uses_generic_message() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="bad gateway")

    with pytest.raises(StrategyEngineTransportError, match="HTTP 502"):
        await _client(handler).list_strategies()


@pytest.mark.asyncio
async def test_timeout_is_a_transport_error_and_not_retried() -> None:
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(StrategyEngineTransportError, match="did not respond"):
        await _client(handler).create_strategy({"strategy_id": "s-6"})

    assert calls["count"] == 1


@pytest.mark.asyncio
async def test_non_json_success_body_is_a_transport_error() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>ok</html>")

    with pytest.raises(StrategyEngineTransportError, match="non-JSON"):
        await _client(handler).delete_strategy("s-7")


@pytest.mark.asyncio
async def test_owned_client_is_closed_by_context_manager() -> None:
    async with StrategyEngineClient(base_url=BASE_URL) as client:
        inner = client._client
        assert client._owns_client is True
    assert inner.is_closed is True


@pytest.mark.asyncio
async def test_injected_client_is_left_open() -> None:
    injected = httpx.AsyncClient(transport=httpx.MockTransport(lambda _request: httpx.Response(200, json={})))
    client = StrategyEngineClient(base_url=BASE_URL, client=injected)

    await client.aclose()

    assert injected.is_closed is False
    await injected.aclose()


@pytest.mark.asyncio
async def test_set_strategy_active_sends_only_the_flag() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"success": True, "strategy_id": "s-1", "message": "disabled"})

    result = await _client(handler).set_strategy_active("s-1", False)

    assert result.message == "disabled"
    assert captured[0].method == "PUT"
    assert captured[0].url.path == "/api/v1/strategy/s-1"
    assert json.loads(captured[0].content) == {"is_active": False}


@pytest.mark.asyncio
async def test_create_from_template_mints_id_when_missing() -> None:
    captured: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.url.path == "/api/v1/strategy/from_template"
        captured.append(json.loads(request.content))
        return httpx.Response(200, json={"code": 200, "message": "success", "data": {"success": True}})

    strategy_id = await _client(handler).create_from_template("tpl_trend", name="趋势", author="alice")

    assert strategy_id.startswith("strategy_")
    assert captured[0] == {
        "template_id": "tpl_trend",
        "strategy_id": strategy_id,
        "name": "趋势",
        "author": "alice",
    }


@pytest.mark.asyncio
async def test_create_from_template_rejection_is_surfaced() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": False, "strategy_id": "", "message": "模板不存在"})

    with pytest.raises(StrategyEngineRejectedError, match="模板不存在"):
        await _client(handler).create_from_template("missing", name="x", strategy_id="s-9")


@pytest.mark.asyncio
async def test_list_remote_templates_passes_filters() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v1/strategy/template/list"
        assert dict(request.url.params) == {"category": "趋势跟踪"}
        return httpx.Response(
            200,
            json={
                "total": 1,
                "templates": [
                    {
                        "template_id": "tpl_trend",
                        "name": "趋势模板",
                        "category": "趋势跟踪",
                        "difficulty": "beginner",
                        "config_template": {"positions_config": [], "signals_config": []},
                        "created_at": "2024-01-01T00:00:00",
                    }
                ],
            },
        )

    page = await _client(handler).list_remote_templates(category="趋势跟踪")

    assert page.total == 1
    assert page.templates[0].template_id == "tpl_trend"
    assert page.templates[0].config_template["positions_config"] == []
