from __future__ import annotations

import asyncio
import json
from datetime import date
from unittest.mock import AsyncMock

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from webai.errors import AssertionFailed
from webai.fixture import AiFixture, TestInfo, update_dump_annotation
from webai.models import MIDSCENE_DUMP_ANNOTATION, Annotation, WaitForOptions
from webai.registry import AgentRegistry

from .conftest import FakeAgent, make_page


def _fixture(page=None, info: TestInfo | None = None) -> AiFixture:  # noqa: ANN001
    registry = AgentRegistry(lambda p, options: FakeAgent(p, options))
    return AiFixture(
        page or make_page(),
        info or TestInfo(test_id="t1", title_path=["suite.py", "test_case"]),
        registry,
        network_idle_timeout_ms=100,
    )


def _dump_annotations(info: TestInfo) -> list[Annotation]:
    return [a for a in info.annotations if a.type == MIDSCENE_DUMP_ANNOTATION]


def test_update_dump_annotation_replaces_in_place() -> None:
    info = TestInfo(test_id="t", annotations=[Annotation(type="skip", description="later")])

    first = update_dump_annotation(info, "dump-1")
    second = update_dump_annotation(info, "dump-2")

    assert first is second
    assert len(_dump_annotations(info)) == 1
    assert _dump_annotations(info)[0].description == "dump-2"
    assert info.annotations[0] == Annotation(type="skip", description="later")
    assert len(info.annotations) == 2


@pytest.mark.asyncio
async def test_operations_call_agent_and_name_steps() -> None:
    fx = _fixture()

    assert await fx.ai("open menu") == "ai-result"
    assert await fx.ai("read title", type="query") == "ai-result"
    assert await fx.ai_action("click login") == ["step"]
    assert await fx.ai_query({"title": "page title, string"}) == {"title": "Hello"}
    assert await fx.ai_assert("button is visible", "no button") is None
    opt = WaitForOptions(timeout_ms=10)
    assert await fx.ai_wait_for("list loaded", opt) is None

    fx.agent.ai.assert_any_await("open menu", "action")
    fx.agent.ai.assert_any_await("read title", "query")
    fx.agent.ai_action.assert_awaited_once_with("click login")
    fx.agent.ai_query.assert_awaited_once_with({"title": "page title, string"})
    fx.agent.ai_assert.assert_awaited_once_with("button is visible", "no button")
    fx.agent.ai_wait_for.assert_awaited_once_with("list loaded", opt)

    titles = [s.title for s in fx.test_info.steps]
    assert titles == [
        "ai - open menu",
        "ai - read title",
        "aiAction - click login",
        "aiQuery - " + json.dumps({"title": "page title, string"}),
        "aiAssert - button is visible",
        "aiWaitFor - list loaded",
    ]
    assert all(s.status == "passed" for s in fx.test_info.steps)
    assert fx.page.wait_for_load_state.await_count == 6


@pytest.mark.asyncio
async def test_ai_query_label_with_non_json_demand() -> None:
    fx = _fixture()
    demand = {"when": date(2024, 1, 1), "title": "标题"}

    assert await fx.ai_query(demand) == {"title": "Hello"}

    fx.agent.ai_query.assert_awaited_once_with(demand)
    assert fx.test_info.steps[0].title == 'aiQuery - {"when": "2024-01-01", "title": "标题"}'
    assert fx.test_info.steps[0].status == "passed"


@pytest.mark.asyncio
async def test_network_idle_runs_before_agent_call() -> None:
    order: list[str] = []
    page = make_page()
    page.wait_for_load_state = AsyncMock(side_effect=lambda *a, **k: order.append("idle"))
    fx = _fixture(page)
    fx.agent.ai_action = AsyncMock(side_effect=lambda *a: order.append("agent"))

    await fx.ai_action("click")

    assert order == ["idle", "agent"]
    page.wait_for_load_state.assert_awaited_once_with("networkidle", timeout=100)


@pytest.mark.asyncio
async def test_idle_timeout_does_not_skip_operation() -> None:
    page = make_page()
    page.wait_for_load_state = AsyncMock(side_effect=PlaywrightTimeoutError("Timeout 100ms exceeded."))
    fx = _fixture(page)

    assert await fx.ai_action("click anyway") == ["step"]
    fx.agent.ai_action.assert_awaited_once_with("click anyway")
    assert fx.test_info.steps[0].status == "passed"


@pytest.mark.asyncio
async def test_assert_passes_and_records_one_annotation() -> None:
    fx = _fixture()

    await fx.ai_assert("button is visible")
    fx.teardown()

    annotations = _dump_annotations(fx.test_info)
    assert len(annotations) == 1
    assert annotations[0].description == '{"dump": 1}'
    assert fx.test_info.steps[0].status == "passed"


@pytest.mark.asyncio
async def test_assert_failure_propagates_same_error() -> None:
    fx = _fixture()
    error = AssertionFailed("button is visible", "no button on page")
    fx.agent.ai_assert = AsyncMock(side_effect=error)

    with pytest.raises(AssertionFailed) as excinfo:
        await fx.ai_assert("button is visible")

    assert excinfo.value is error
    step = fx.test_info.steps[0]
    assert step.status == "failed"
    assert step.error is error


@pytest.mark.asyncio
async def test_teardown_twice_updates_single_annotation() -> None:
    fx = _fixture()
    await fx.ai_action("click")

    fx.teardown()
    fx.teardown()

    annotations = _dump_annotations(fx.test_info)
    assert len(annotations) == 1
    assert annotations[0].description == '{"dump": 2}'


@pytest.mark.asyncio
async def test_unawaited_operations_on_same_page_run_in_order() -> None:
    events: list[str] = []
    fx = _fixture()

    async def slow_action(prompt: str) -> str:
        events.append(f"start {prompt}")
        await asyncio.sleep(0.01)
        events.append(f"end {prompt}")
        return prompt

    fx.agent.ai_action = AsyncMock(side_effect=slow_action)

    results = await asyncio.gather(fx.ai_action("a"), fx.ai_action("b"), fx.ai_action("c"))

    assert results == ["a", "b", "c"]
    assert events == ["start a", "end a", "start b", "end b", "start c", "end c"]


def test_test_info_from_node() -> None:
    class Node:
        nodeid = "tests/test_login.py::TestLogin::test_submit[chromium]"

    info = TestInfo.from_node(Node())

    assert info.test_id == Node.nodeid
    assert info.title_path == ["tests/test_login.py", "TestLogin", "test_submit[chromium]"]
    assert info.annotations == []
