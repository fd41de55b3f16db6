"""数据模型定义"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


MIDSCENE_DUMP_ANNOTATION = "MIDSCENE_DUMP_ANNOTATION"


class ActionType(str, Enum):
    """UI-TARS 动作空间（固定九个动词）"""
    CLICK = "click"
    LEFT_DOUBLE = "left_double"
    RIGHT_SINGLE = "right_single"
    DRAG = "drag"
    HOTKEY = "hotkey"
    TYPE = "type"
    SCROLL = "scroll"
    WAIT = "wait"
    FINISHED = "finished"
    CALL_USER = "call_user"

    @property
    def is_terminal(self) -> bool:
        return self in (ActionType.FINISHED, ActionType.CALL_USER)


SCROLL_DIRECTIONS = ("up", "down", "left", "right")


@dataclass
class AgentOptions:
    """每个页面绑定的 Agent 元数据"""
    test_id: str
    cache_id: str
    group_name: str
    group_description: str
    generate_report: bool = False  # 报告由外部 reporter 生成


@dataclass
class Annotation:
    """测试记录上的注解"""
    type: str
    description: Optional[str] = None


@dataclass
class PlannerOutput:
    """Planner 解析后的单步决策"""
    thought: str
    action_type: ActionType
    action_inputs: Dict[str, Any]
    summary: str
    raw: str = ""


@dataclass
class WaitForOptions:
    timeout_ms: int = 15000
    check_interval_ms: int = 3000


@dataclass
class TaskRecord:
    """单个任务（规划 / 动作 / 查询 / 断言）的执行记录"""
    type: str
    sub_type: str
    param: Any = None
    thought: Optional[str] = None
    output: Any = None
    status: str = "pending"  # pending|finished|failed
    error: Optional[str] = None
    started_at: float = 0.0
    cost_ms: int = 0


@dataclass
class ExecutionDump:
    """一次 Agent 调用的全部任务"""
    name: str
    log_time: float
    tasks: List[TaskRecord] = field(default_factory=list)
