"""页面 → Agent 绑定表"""

import asyncio
import logging
import uuid
import weakref
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from .models import AgentOptions

LOG = logging.getLogger(__name__)

DRIVER_TAG = "playwright"
UNNAMED = "unnamed"

AgentFactory = Callable[[Any, AgentOptions], Any]


def group_and_case_for_test(title_path: Sequence[str]) -> Tuple[str, str]:
    """
    由测试标题路径推导 (task_file, task_title)。

    ["SuiteA", "CaseB"] -> ("SuiteA", "CaseB")
    ["OnlyCase"]        -> ("OnlyCase", "OnlyCase")
    []                  -> ("unnamed", "unnamed")
    """
    titles = list(title_path or [])
    if len(titles) > 1:
        task_title = titles.pop() or UNNAMED
        task_file = " > ".join(titles)
    elif len(titles) == 1:
        task_title = task_file = titles[0]
    else:
        task_title = task_file = UNNAMED
    return task_file, task_title


class AgentRegistry:
    """
    每个页面绑定唯一的 Agent。

    页面 ID 保存在旁路表中（弱引用，不修改页面对象），ID → Agent 的映射
    在 registry 生命周期内不淘汰。一个测试进程（worker）一个 registry。

    Agent 持有页面的强引用，因此已绑定 Agent 的页面及其 Memory 会一直
    存活到 close()；弱引用只对尚未绑定 Agent 的页面（如 lock_for）生效。
    """

    def __init__(self, agent_factory: AgentFactory, driver_tag: str = DRIVER_TAG):
        self.agent_factory = agent_factory
        self.driver_tag = driver_tag
        self._page_ids: "weakref.WeakKeyDictionary[Any, str]" = weakref.WeakKeyDictionary()
        self._agents: Dict[str, Any] = {}
        self._locks: Dict[str, Tuple[asyncio.Lock, Optional[asyncio.AbstractEventLoop]]] = {}

    def __len__(self) -> int:
        return len(self._agents)

    def identity_for(self, page: Any) -> str:
        """首次使用时为页面生成 ID"""
        page_id = self._page_ids.get(page)
        if page_id is None:
            page_id = uuid.uuid4().hex
            self._page_ids[page] = page_id
        return page_id

    def get_or_create(self, page: Any, test_info: Any) -> Any:
        page_id = self.identity_for(page)
        agent = self._agents.get(page_id)
        if agent is None:
            task_file, task_title = group_and_case_for_test(test_info.title_path)
            options = AgentOptions(
                test_id=f"{self.driver_tag}-{test_info.test_id}-{page_id}",
                cache_id=f"{task_file}({task_title})",
                group_name=task_title,
                group_description=task_file,
                generate_report=False,
            )
            agent = self.agent_factory(page, options)
            self._agents[page_id] = agent
            LOG.debug("bound agent %s to page %s", options.test_id, page_id)
        return agent

    def lock_for(self, page: Any) -> asyncio.Lock:
        """
        同一页面上的操作按调用顺序串行执行。

        锁与首次在其上运行的事件循环绑定；registry 跨测试存活而每个测试
        可能有各自的事件循环，换了循环就换一把新锁。
        """
        page_id = self.identity_for(page)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        lock, bound = self._locks.get(page_id, (None, None))
        if lock is None or (loop is not None and bound is not None and bound is not loop):
            lock = asyncio.Lock()
            bound = loop
        self._locks[page_id] = (lock, bound or loop)
        return lock

    def close(self) -> None:
        self._agents.clear()
        self._locks.clear()
        self._page_ids.clear()
