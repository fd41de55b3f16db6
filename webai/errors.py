"""异常定义"""

from typing import Optional


class AgentError(Exception):
    """Agent 调用失败"""


class PlanningError(AgentError):
    """模型输出无法解析为合法动作"""


class AssertionFailed(AgentError, AssertionError):
    """aiAssert 断言不成立"""

    def __init__(self, assertion: str, thought: str = "", message: Optional[str] = None):
        self.assertion = assertion
        self.thought = thought
        super().__init__(message or f"Assertion failed: {assertion}\nReason: {thought}")


class WaitForTimeout(AgentError):
    """aiWaitFor 在时限内未满足条件"""

    def __init__(self, assertion: str, timeout_ms: int, thought: str = ""):
        self.assertion = assertion
        self.timeout_ms = timeout_ms
        self.thought = thought
        super().__init__(
            f"waitFor timeout ({timeout_ms}ms): {assertion}"
            + (f"\nLast reason: {thought}" if thought else "")
        )
