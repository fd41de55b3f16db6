from __future__ import annotations

import asyncio
import gc

import pytest

from webai.fixture import TestInfo
from webai.registry import AgentRegistry, group_and_case_for_test

from .conftest import FakeAgent, make_page


def _registry() -> AgentRegistry:
    return AgentRegistry(lambda page, options: FakeAgent(page, options))


@pytest.mark.parametrize(
    "title_path, expected",
    [
        (["SuiteA", "CaseB"], ("SuiteA", "CaseB")),
        (["tests/test_a.py", "TestLogin", "test_ok"], ("tests/test_a.py > TestLogin", "test_ok")),
        (["OnlyCase"], ("OnlyCase", "OnlyCase")),
        ([], ("unnamed", "unnamed")),
        (None, ("unnamed", "unnamed")),
        (["Suite", ""], ("Suite", "unnamed")),
    ],
)
def test_group_and_case_for_test(title_path, expected) -> None:  # noqa: ANN001
    assert group_and_case_for_test(title_path) == expected


def test_group_and_case_does_not_mutate_title_path() -> None:
    path = ["A", "B"]
    group_and_case_for_test(path)
    assert path == ["A", "B"]


def test_same_page_returns_same_agent() -> None:
    registry = _registry()
    page = make_page()
    info = TestInfo(test_id="t1", title_path=["SuiteA", "CaseB"])

    first = registry.get_or_create(page, info)
    second = registry.get_or_create(page, TestInfo(test_id="t2", title_path=["Other"]))

    assert first is second
    assert len(registry) == 1


def test_distinct_pages_get_distinct_agents() -> None:
    registry = _registry()
    info = TestInfo(test_id="t1", title_path=["SuiteA", "CaseB"])

    a = registry.get_or_create(make_page(), info)
    b = registry.get_or_create(make_page(), info)

    assert a is not b
    assert a.options.test_id != b.options.test_id
    assert len(registry) == 2


def test_agent_options_derived_from_test() -> None:
    registry = _registry()
    page = make_page()
    agent = registry.get_or_create(page, TestInfo(test_id="abc", title_path=["SuiteA", "CaseB"]))
    page_id = registry.identity_for(page)

    assert agent.options.test_id == f"playwright-abc-{page_id}"
    assert agent.options.cache_id == "SuiteA(CaseB)"
    assert agent.options.group_name == "CaseB"
    assert agent.options.group_description == "SuiteA"
    assert agent.options.generate_report is False
    assert agent.page is page


def test_identity_is_not_stored_on_page() -> None:
    registry = _registry()

    class Page:
        pass

    page = Page()
    page_id = registry.identity_for(page)

    assert registry.identity_for(page) == page_id
    assert vars(page) == {}


def test_identity_released_with_page() -> None:
    registry = _registry()

    class Page:
        pass

    page = Page()
    registry.identity_for(page)
    del page
    gc.collect()

    assert len(registry._page_ids) == 0


def test_lock_is_per_page() -> None:
    registry = _registry()
    page = make_page()

    assert registry.lock_for(page) is registry.lock_for(page)
    assert registry.lock_for(page) is not registry.lock_for(make_page())
    assert isinstance(registry.lock_for(page), asyncio.Lock)


def test_close_forgets_agents() -> None:
    registry = _registry()
    page = make_page()
    first = registry.get_or_create(page, TestInfo(test_id="t"))
    registry.close()

    assert len(registry) == 0
    assert registry.get_or_create(page, TestInfo(test_id="t")) is not first


def test_bound_page_lives_until_close() -> None:
    registry = _registry()

    class Page:
        pass

    page = Page()
    registry.get_or_create(page, TestInfo(test_id="t"))
    del page
    gc.collect()

    assert len(registry._page_ids) == 1
    registry.close()
    gc.collect()
    assert len(registry._page_ids) == 0


def test_lock_serializes_across_event_loops() -> None:
    registry = _registry()
    page = make_page()
    registry.lock_for(page)
    events: list[str] = []
    locks: list[asyncio.Lock] = []

    async def worker(name: str) -> None:
        lock = registry.lock_for(page)
        locks.append(lock)
        async with lock:
            events.append(f"{name}-start")
            await asyncio.sleep(0)
            events.append(f"{name}-end")

    async def main() -> None:
        await asyncio.gather(worker("a"), worker("b"))

    asyncio.run(main())
    asyncio.run(main())

    assert events == ["a-start", "a-end", "b-start", "b-end"] * 2
    assert locks[0] is locks[1]
    assert locks[2] is locks[3]
    assert locks[1] is not locks[2]
