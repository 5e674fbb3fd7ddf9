from __future__ import annotations

import asyncio
import json
import re
from typing import Any

import httpx
import pytest

from src.engine.strategy import StrategyEditError, StrategyEditor, to_wire_format
from src.engine.strategy.edits import add_position, remove_position, update_metadata, update_position
from src.engine.strategy.models import PositionConfig
from src.engine.strategy.serializer import WIRE_FIELDS
from src.services.strategy_engine_client import StrategyEngineClient

BASE_URL = "http://engine.test/api/v1"


def _client(handler) -> StrategyEngineClient:
    return StrategyEngineClient(
        base_url=BASE_URL,
        timeout_seconds=5,
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def _echo_create(requests: list[httpx.Request]):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.method == "POST":
            body = json.loads(request.content)
            return httpx.Response(
                200,
                json={"code": 200, "message": "success", "data": {"strategy_id": body["strategy_id"]}},
            )
        if request.method == "PUT":
            return httpx.Response(200, json={"success": True, "message": "updated"})
        return httpx.Response(404, json={"message": "not found"})

    return handler


@pytest.mark.asyncio
async def test_invalid_draft_is_not_sent() -> None:
    requests: list[httpx.Request] = []
    editor = StrategyEditor.from_scratch()

    result = await editor.submit(_client(_echo_create(requests)))

    assert result.ok is False
    assert result.status == "invalid"
    assert [item.code for item in result.violations] == [
        "MISSING_STRATEGY_NAME",
        "MISSING_POSITIONS",
        "MISSING_SIGNALS",
    ]
    assert requests == []
    assert editor.can_submit is False


@pytest.mark.asyncio
async def test_create_mints_id_and_adopts_it_after_confirmation() -> None:
    requests: list[httpx.Request] = []
    editor = StrategyEditor.from_template("bi_long")
    assert editor.draft.strategy_id == ""
    assert editor.can_submit is True

    result = await editor.submit(_client(_echo_create(requests)))

    assert result.ok is True
    assert result.status == "created"
    assert re.fullmatch(r"strategy_\d{13}_[0-9a-f]{6}", result.strategy_id)
    assert editor.draft.strategy_id == result.strategy_id
    assert editor.is_persisted is True
    assert editor.is_dirty is False

    assert len(requests) == 1
    assert requests[0].method == "POST"
    assert requests[0].url.path == "/api/v1/strategy"
    body = json.loads(requests[0].content)
    assert tuple(body) == WIRE_FIELDS
    assert body["strategy_id"] == result.strategy_id
    assert body["positions_config"][0]["name"] == "笔方向多头"


@pytest.mark.asyncio
async def test_second_submit_sends_partial_update() -> None:
    requests: list[httpx.Request] = []
    client = _client(_echo_create(requests))
    editor = StrategyEditor.from_template("bi_long")
    created = await editor.submit(client)

    editor.apply(update_position, 0, timeout=150)
    assert editor.is_dirty is True
    result = await editor.submit(client)

    assert result.status == "updated"
    assert result.message == "updated"
    assert requests[-1].method == "PUT"
    assert requests[-1].url.path == f"/api/v1/strategy/{created.strategy_id}"
    body = json.loads(requests[-1].content)
    assert set(body) == {"positions_config"}
    assert body["positions_config"][0]["timeout"] == 150
    assert editor.is_dirty is False


@pytest.mark.asyncio
async def test_unchanged_persisted_draft_skips_the_engine() -> None:
    requests: list[httpx.Request] = []
    client = _client(_echo_create(requests))
    editor = StrategyEditor.from_template("bi_long")
    await editor.submit(client)

    result = await editor.submit(client)

    assert result.ok is True
    assert result.status == "updated"
    assert len(requests) == 1


@pytest.mark.asyncio
async def test_business_rejection_is_surfaced_verbatim_and_draft_kept() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"code": 400, "message": "策略名称已存在", "data": None})

    editor = StrategyEditor.from_template("bi_long")
    before = to_wire_format(editor.draft)

    result = await editor.submit(_client(handler))

    assert result.ok is False
    assert result.status == "rejected"
    assert result.message == "策略名称已存在"
    assert to_wire_format(editor.draft) == before
    assert editor.is_persisted is False
    assert editor.is_submitting is False


@pytest.mark.asyncio
async def test_transport_failure_keeps_draft_and_allows_resubmit() -> None:
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 1:
            raise httpx.ConnectError("connection refused", request=request)
        body = json.loads(request.content)
        return httpx.Response(200, json={"strategy_id": body["strategy_id"]})

    client = _client(handler)
    editor = StrategyEditor.from_template("bi_long")

    failed = await editor.submit(client)
    assert failed.status == "transport_error"
    assert editor.draft.strategy_id == ""

    retried = await editor.submit(client)
    assert retried.status == "created"
    assert calls["count"] == 2


@pytest.mark.asyncio
async def test_non_2xx_uses_engine_message() -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"message": "engine exploded"})

    result = await StrategyEditor.from_template("bi_long").submit(_client(handler))

    assert result.status == "transport_error"
    assert result.message == "engine exploded"


@pytest.mark.asyncio
async def test_submission_in_flight_blocks_resubmit_but_not_editing() -> None:
    release = asyncio.Event()
    requests: list[httpx.Request] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        await release.wait()
        body = json.loads(request.content)
        return httpx.Response(200, json={"data": {"strategy_id": body["strategy_id"]}})

    client = _client(handler)
    editor = StrategyEditor.from_template("bi_long")

    task = asyncio.create_task(editor.submit(client))
    while not editor.is_submitting:
        await asyncio.sleep(0)

    busy = await editor.submit(client)
    editor.apply(update_metadata, description="edited while submitting")
    release.set()
    created = await task

    assert busy.status == "busy"
    assert created.status == "created"
    assert len(requests) == 1
    assert editor.draft.description == "edited while submitting"
    assert editor.draft.strategy_id == created.strategy_id
    assert editor.is_dirty is True


@pytest.mark.asyncio
async def test_load_fetches_strategy_for_editing() -> None:
    source = StrategyEditor.from_template("buypoint").draft
    source.strategy_id = "strategy_1700000000000_abcdef"
    wire: dict[str, Any] = to_wire_format(source)
    wire["created_at"] = "2025-10-15T00:00:00Z"

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v1/strategy/strategy_1700000000000_abcdef"
        return httpx.Response(200, json={"code": 200, "message": "success", "data": wire})

    editor = await StrategyEditor.load(_client(handler), "strategy_1700000000000_abcdef")

    assert editor.draft == source
    assert editor.is_persisted is True
    assert editor.is_dirty is False


def test_failed_edit_keeps_current_draft() -> None:
    editor = StrategyEditor.from_template("bi_long")
    before = editor.draft

    with pytest.raises(StrategyEditError):
        editor.apply(update_position, 3, timeout=50)

    assert editor.draft is before


def test_removing_a_position_reindexes_view_state() -> None:
    editor = StrategyEditor.from_template("bi_long")
    editor.apply(add_position, PositionConfig(name="second"))
    editor.view_state.expanded_positions = {0, 1}
    editor.view_state.expanded_operations = {"1-opens-0"}

    editor.apply(remove_position, 0)

    assert [item.name for item in editor.draft.positions] == ["second"]
    assert editor.view_state.expanded_positions == {0}
    assert editor.view_state.expanded_operations == {"0-opens-0"}


def test_keyword_indices_also_reindex_view_state() -> None:
    editor = StrategyEditor.from_template("bi_long")
    editor.apply(add_position, PositionConfig(name="second"))
    editor.view_state.expanded_positions = {1}
    editor.view_state.expanded_factors = {"0-opens-0-0", "1-exits-0-0"}

    editor.apply(remove_position, position_index=0)

    assert [item.name for item in editor.draft.positions] == ["second"]
    assert editor.view_state.expanded_positions == {0}
    assert editor.view_state.expanded_factors == {"0-exits-0-0"}


def test_preview_is_readable_json() -> None:
    editor = StrategyEditor.from_template("bi_long")

    text = editor.preview()

    assert text.startswith("{\n")
    assert "笔方向多头" in text
    assert json.loads(text)["signals_config"][0]["bi_init_length"] == 9


def test_unknown_template_falls_back_to_blank_draft() -> None:
    editor = StrategyEditor.from_template("missing", author="dora")

    assert editor.draft.positions == []
    assert editor.draft.author == "dora"
