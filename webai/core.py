"""默认的页面智能体：截图 → 规划 → 执行"""

import asyncio
import json
import logging
import re
import time
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI
from playwright.async_api import Page

from .config import Settings
from .controller import Controller
from .errors import AgentError, AssertionFailed, WaitForTimeout
from .memory import Memory
from .models import ActionType, AgentOptions, ExecutionDump, PlannerOutput, WaitForOptions
from .perception import Perception
from .planner import Planner
from .prompt import get_summary

LOG = logging.getLogger(__name__)

QUERY_PROMPT = """You are a visual data extraction assistant. Look at the screenshot of the current page and extract the data described by the demand.

Demand:
{demand}

Reply with a JSON object only, in this shape:
{{"data": <the extracted data matching the demand>, "errors": [<reasons the data could not be extracted, if any>]}}"""

ASSERT_PROMPT = """You are a visual assertion checker. Look at the screenshot of the current page and decide whether the assertion holds.

Assertion:
{assertion}

Reply with a JSON object only, in this shape:
{{"pass": true or false, "thought": "<why the assertion holds or not>"}}"""

_FENCE_RE = re.compile(r"^```(?:json)?\s*([\s\S]*?)\s*```$")


def parse_json_reply(text: str) -> Dict[str, Any]:
    """解析模型的 JSON 回复，兼容 ```json 代码块"""
    text = (text or "").strip()
    match = _FENCE_RE.match(text)
    if match:
        text = match.group(1)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise AgentError(f"模型返回的不是合法 JSON: {e}; 原始输出: {text!r}") from e
    if not isinstance(data, dict):
        raise AgentError(f"模型返回的 JSON 不是对象: {text!r}")
    return data


class PageAgent:
    """页面智能体：一个实例绑定一个页面"""

    def __init__(
        self,
        page: Page,
        options: AgentOptions,
        client: Optional[AsyncOpenAI] = None,
        settings: Optional[Settings] = None,
    ):
        self.page = page
        self.options = options
        self.settings = settings or Settings.from_env()
        self._client = client
        self.perception = Perception()
        self.controller = Controller(page)
        self.memory = Memory(options)
        self._planner: Optional[Planner] = None

    @property
    def client(self) -> AsyncOpenAI:
        # 延迟创建，未配置 API Key 时只在真正调用模型时报错
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.settings.api_key,
                base_url=self.settings.base_url,
            )
        return self._client

    @property
    def planner(self) -> Planner:
        if self._planner is None:
            self._planner = Planner(self.client, self.settings.model_name, self.settings.language)
        return self._planner

    async def ai(self, task_prompt: str, type: str = "action") -> Any:
        if type == "action":
            return await self.ai_action(task_prompt)
        if type == "query":
            return await self.ai_query(task_prompt)
        raise ValueError(f"未知的 ai 类型: {type!r}，只支持 'action' 或 'query'")

    async def ai_action(self, task_prompt: str) -> List[PlannerOutput]:
        """
        执行任务的主循环，直到模型输出 finished。

        返回执行过的每一步决策。
        """
        execution = self.memory.start_execution(f"Action - {task_prompt}")
        screenshots: List[str] = []
        history: List[str] = []
        steps: List[PlannerOutput] = []

        for step in range(self.settings.max_steps):
            # 1. 感知
            snapshot = await self.perception.capture(self.page)
            screenshots.append(snapshot.screenshot_base64)

            # 2. 规划
            decision = await self._plan(execution, task_prompt, screenshots, history)
            history.append(get_summary(decision.raw))
            steps.append(decision)
            LOG.info("step %d: %s %s", step + 1, decision.action_type.value, decision.summary)

            # 3. 判断是否完成
            if decision.action_type == ActionType.FINISHED:
                return steps
            if decision.action_type == ActionType.CALL_USER:
                raise AgentError(f"模型请求人工介入: {decision.thought or task_prompt}")

            # 4. 执行
            task = self.memory.start_task(
                execution, "Action", decision.action_type.value, param=decision.action_inputs
            )
            success = await self.controller.execute(decision, snapshot.viewport)
            self.memory.finish_task(
                task,
                thought=decision.thought,
                error=None if success else AgentError(f"{decision.action_type.value} 执行失败"),
            )

        raise AgentError(f"超过最大步数 {self.settings.max_steps} 仍未完成: {task_prompt}")

    async def _plan(
        self,
        execution: ExecutionDump,
        task_prompt: str,
        screenshots: List[str],
        history: List[str],
    ) -> PlannerOutput:
        task = self.memory.start_task(execution, "Planning", "Plan", param=task_prompt)
        try:
            decision = await self.planner.plan(task_prompt, screenshots, history)
        except Exception as e:
            self.memory.finish_task(task, error=e)
            raise
        self.memory.finish_task(task, output=decision.summary, thought=decision.thought)
        return decision

    async def _ask_json(self, prompt: str) -> Dict[str, Any]:
        snapshot = await self.perception.capture(self.page)
        response = await self.client.chat.completions.create(
            model=self.settings.model_name,
            temperature=0,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:image/png;base64,{snapshot.screenshot_base64}"},
                        },
                    ],
                }
            ],
        )
        return parse_json_reply(response.choices[0].message.content)

    async def ai_query(self, demand: Any) -> Any:
        """根据 demand（文本或字段描述）从截图中提取数据"""
        if isinstance(demand, str):
            demand_text = demand
        else:
            demand_text = json.dumps(demand, ensure_ascii=False, default=str)
        execution = self.memory.start_execution(f"Query - {demand_text}")
        task = self.memory.start_task(execution, "Insight", "Query", param=demand)
        try:
            reply = await self._ask_json(QUERY_PROMPT.format(demand=demand_text))
            errors = reply.get("errors") or []
            if errors:
                raise AgentError(f"数据提取失败: {'; '.join(map(str, errors))}")
        except Exception as e:
            self.memory.finish_task(task, error=e)
            raise
        self.memory.finish_task(task, output=reply.get("data"))
        return reply.get("data")

    async def _check(self, assertion: str) -> Dict[str, Any]:
        reply = await self._ask_json(ASSERT_PROMPT.format(assertion=assertion))
        return {"pass": bool(reply.get("pass")), "thought": str(reply.get("thought") or "")}

    async def ai_assert(self, assertion: str, error_msg: Optional[str] = None) -> None:
        execution = self.memory.start_execution(f"Assert - {assertion}")
        task = self.memory.start_task(execution, "Insight", "Assert", param=assertion)
        try:
            result = await self._check(assertion)
            if not result["pass"]:
                message = f"{error_msg}\n{result['thought']}" if error_msg else None
                raise AssertionFailed(assertion, result["thought"], message)
        except Exception as e:
            self.memory.finish_task(task, error=e)
            raise
        self.memory.finish_task(task, output=True, thought=result["thought"])

    async def ai_wait_for(self, assertion: str, opt: Optional[WaitForOptions] = None) -> None:
        """轮询断言，直到成立或超时"""
        opt = opt or WaitForOptions()
        execution = self.memory.start_execution(f"WaitFor - {assertion}")
        task = self.memory.start_task(execution, "Insight", "WaitFor", param=assertion)
        deadline = time.monotonic() + opt.timeout_ms / 1000
        thought = ""
        while True:
            started = time.monotonic()
            try:
                result = await self._check(assertion)
            except Exception as e:
                self.memory.finish_task(task, error=e)
                raise
            thought = result["thought"]
            if result["pass"]:
                self.memory.finish_task(task, output=True, thought=thought)
                return
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            elapsed = time.monotonic() - started
            await asyncio.sleep(min(max(opt.check_interval_ms / 1000 - elapsed, 0), remaining))
            if time.monotonic() >= deadline:
                break

        error = WaitForTimeout(assertion, opt.timeout_ms, thought)
        self.memory.finish_task(task, error=error, thought=thought)
        raise error

    def dump_data_string(self) -> str:
        return self.memory.dump_data_string()
