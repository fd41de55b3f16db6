"""webai：用自然语言驱动 Playwright 页面的测试工具

包含各个模块：
- prompt: UI-TARS 规划 Prompt 与输出摘要
- planner: 规划模块（调用模型、解析动作）
- perception / controller / memory / core: 默认的页面智能体
- registry: 页面 → Agent 绑定
- idle: 网络空闲等待
- fixture / plugin: pytest 适配层
"""

from .config import Settings
from .core import PageAgent
from .errors import AgentError, AssertionFailed, PlanningError, WaitForTimeout
from .fixture import AiFixture, StepRecord, TestInfo, update_dump_annotation
from .idle import wait_for_network_idle
from .models import (
    MIDSCENE_DUMP_ANNOTATION,
    ActionType,
    AgentOptions,
    Annotation,
    PlannerOutput,
    WaitForOptions,
)
from .planner import Planner, parse_prediction
from .prompt import LANGUAGE, UI_TARS_PLANNING_PROMPT, get_summary, ui_tars_planning_prompt
from .registry import AgentRegistry, group_and_case_for_test

__all__ = [
    "Settings",
    "PageAgent",
    "AgentError",
    "AssertionFailed",
    "PlanningError",
    "WaitForTimeout",
    "AiFixture",
    "StepRecord",
    "TestInfo",
    "update_dump_annotation",
    "wait_for_network_idle",
    "MIDSCENE_DUMP_ANNOTATION",
    "ActionType",
    "AgentOptions",
    "Annotation",
    "PlannerOutput",
    "WaitForOptions",
    "Planner",
    "parse_prediction",
    "LANGUAGE",
    "UI_TARS_PLANNING_PROMPT",
    "get_summary",
    "ui_tars_planning_prompt",
    "AgentRegistry",
    "group_and_case_for_test",
]
