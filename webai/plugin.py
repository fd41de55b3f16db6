"""pytest 插件：提供 ai / ai_action / ai_query / ai_assert / ai_wait_for fixture

测试需自行提供异步 Playwright 的 ``page`` fixture。
"""

import pytest

from .config import Settings
from .core import PageAgent
from .fixture import AiFixture, TestInfo
from .models import Annotation
from .registry import AgentRegistry


def _set_user_property(node, annotation: Annotation) -> None:
    """把 dump 同步到 user_properties（junit-xml 报告可见），只保留一条"""
    for index, (name, _) in enumerate(node.user_properties):
        if name == annotation.type:
            node.user_properties[index] = (name, annotation.description)
            return
    node.user_properties.append((annotation.type, annotation.description))


@pytest.fixture(scope="session")
def webai_settings() -> Settings:
    return Settings.from_env()


@pytest.fixture(scope="session")
def webai_agent_factory(webai_settings):
    """覆盖此 fixture 可替换 Agent 实现"""

    def factory(page, options):
        return PageAgent(page, options, settings=webai_settings)

    return factory


@pytest.fixture(scope="session")
def agent_registry(webai_agent_factory):
    registry = AgentRegistry(webai_agent_factory)
    yield registry
    registry.close()


@pytest.fixture
def webai_test_info(request) -> TestInfo:
    return TestInfo.from_node(request.node)


@pytest.fixture
def ai_fixture(request, page, webai_test_info, agent_registry, webai_settings):
    fixture = AiFixture(
        page,
        webai_test_info,
        agent_registry,
        network_idle_timeout_ms=webai_settings.network_idle_timeout_ms,
    )
    yield fixture
    _set_user_property(request.node, fixture.teardown())


@pytest.fixture
def ai(ai_fixture):
    return ai_fixture.ai


@pytest.fixture
def ai_action(ai_fixture):
    return ai_fixture.ai_action


@pytest.fixture
def ai_query(ai_fixture):
    return ai_fixture.ai_query


@pytest.fixture
def ai_assert(ai_fixture):
    return ai_fixture.ai_assert


@pytest.fixture
def ai_wait_for(ai_fixture):
    return ai_fixture.ai_wait_for
