"""测试适配层：把 Agent 调用包装成带步骤记录的测试操作"""

import json
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional

from .config import DEFAULT_NETWORK_IDLE_TIMEOUT_MS
from .idle import wait_for_network_idle
from .models import MIDSCENE_DUMP_ANNOTATION, Annotation, WaitForOptions
from .registry import AgentRegistry

LOG = logging.getLogger(__name__)


@dataclass
class StepRecord:
    """一个命名步骤，只结束一次：passed 或 failed"""
    title: str
    status: str = "pending"  # pending|running|passed|failed
    error: Optional[BaseException] = None
    started_at: float = 0.0
    duration: float = 0.0


@dataclass
class TestInfo:
    """当前测试的信息：ID、标题路径、注解与步骤"""
    __test__ = False

    test_id: str
    title_path: List[str] = field(default_factory=list)
    annotations: List[Annotation] = field(default_factory=list)
    steps: List[StepRecord] = field(default_factory=list)

    @classmethod
    def from_node(cls, node: Any) -> "TestInfo":
        """
        由 pytest 节点构造。标题路径取 nodeid 的各段：
        "tests/test_login.py::TestLogin::test_submit" ->
        ["tests/test_login.py", "TestLogin", "test_submit"]
        """
        title_path = [part for part in node.nodeid.split("::") if part]
        return cls(test_id=node.nodeid, title_path=title_path)

    @asynccontextmanager
    async def step(self, title: str) -> AsyncIterator[StepRecord]:
        record = StepRecord(title=title, status="running", started_at=time.time())
        self.steps.append(record)
        LOG.info("step started: %s", title)
        try:
            yield record
        except BaseException as e:
            record.status = "failed"
            record.error = e
            raise
        else:
            record.status = "passed"
        finally:
            record.duration = time.time() - record.started_at
            LOG.info("step %s (%.2fs): %s", record.status, record.duration, title)


def update_dump_annotation(test_info: TestInfo, dump: str) -> Annotation:
    """每个测试只保留一条 dump 注解：存在则原地更新，否则追加"""
    for annotation in test_info.annotations:
        if annotation.type == MIDSCENE_DUMP_ANNOTATION:
            annotation.description = dump
            return annotation
    annotation = Annotation(type=MIDSCENE_DUMP_ANNOTATION, description=dump)
    test_info.annotations.append(annotation)
    return annotation


class AiFixture:
    """
    暴露给测试体的五个操作：ai / aiAction / aiQuery / aiAssert / aiWaitFor。

    每次调用：打开命名步骤 → 等待网络空闲 → 调用绑定的 Agent；
    结果直接返回，异常原样抛给测试。同一页面上的调用按顺序串行。
    """

    def __init__(
        self,
        page: Any,
        test_info: TestInfo,
        registry: AgentRegistry,
        network_idle_timeout_ms: float = DEFAULT_NETWORK_IDLE_TIMEOUT_MS,
    ):
        self.page = page
        self.test_info = test_info
        self.network_idle_timeout_ms = network_idle_timeout_ms
        self.agent = registry.get_or_create(page, test_info)
        self.registry = registry

    async def _run(self, label: str, call: Callable[[], Awaitable[Any]]) -> Any:
        async with self.registry.lock_for(self.page):
            async with self.test_info.step(label):
                await wait_for_network_idle(self.page, self.network_idle_timeout_ms)
                return await call()

    async def ai(self, task_prompt: str, type: str = "action") -> Any:
        return await self._run(
            f"ai - {task_prompt}",
            lambda: self.agent.ai(task_prompt, type or "action"),
        )

    async def ai_action(self, task_prompt: str) -> Any:
        return await self._run(
            f"aiAction - {task_prompt}",
            lambda: self.agent.ai_action(task_prompt),
        )

    async def ai_query(self, demand: Any) -> Any:
        return await self._run(
            f"aiQuery - {json.dumps(demand, ensure_ascii=False, default=str)}",
            lambda: self.agent.ai_query(demand),
        )

    async def ai_assert(self, assertion: str, error_msg: Optional[str] = None) -> None:
        await self._run(
            f"aiAssert - {assertion}",
            lambda: self.agent.ai_assert(assertion, error_msg),
        )

    async def ai_wait_for(self, assertion: str, opt: Optional[WaitForOptions] = None) -> None:
        await self._run(
            f"aiWaitFor - {assertion}",
            lambda: self.agent.ai_wait_for(assertion, opt),
        )

    def teardown(self) -> Annotation:
        """测试结束后写入 Agent 当前的 dump"""
        return update_dump_annotation(self.test_info, self.agent.dump_data_string())
