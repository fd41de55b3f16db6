"""规划模块：调用视觉模型决策下一步，并解析 UI-TARS 输出"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from openai import AsyncOpenAI

from .errors import PlanningError
from .models import SCROLL_DIRECTIONS, ActionType, PlannerOutput
from .prompt import get_summary, ui_tars_planning_prompt

LOG = logging.getLogger(__name__)

# 携带的历史截图数量上限
MAX_HISTORY_SCREENSHOTS = 5

_THOUGHT_RE = re.compile(r"Thought:([\s\S]*?)(?=\n\s*(?:Action_Summary|Action):|$)")
_ACTION_SUMMARY_RE = re.compile(r"^\s*Action_Summary:(.*)$", re.MULTILINE)
_ACTION_RE = re.compile(r"^\s*Action:(.*)$", re.MULTILINE)
_CALL_RE = re.compile(r"^\s*(\w+)\s*\(([\s\S]*)\)\s*$")
_PARAM_RE = re.compile(r"(\w+)\s*=\s*'([\s\S]*?)'(?=\s*,\s*\w+\s*=|\s*$)")
_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")

_BOX_PARAMS = ("start_box", "end_box")


def parse_box(raw: str) -> Tuple[float, float, float, float]:
    """解析 '[x1, y1, x2, y2]' / '(x1,y1,x2,y2)'；两个数字视为一个点"""
    numbers = [float(n) for n in _NUMBER_RE.findall(raw)]
    if len(numbers) == 2:
        return numbers[0], numbers[1], numbers[0], numbers[1]
    if len(numbers) == 4:
        return numbers[0], numbers[1], numbers[2], numbers[3]
    raise PlanningError(f"无法解析坐标框: {raw!r}")


def _parse_params(args: str) -> Dict[str, Any]:
    params: Dict[str, Any] = {}
    for key, value in _PARAM_RE.findall(args):
        if key in _BOX_PARAMS:
            params[key] = parse_box(value)
        elif key == "content":
            params[key] = value.replace("\\n", "\n").replace("\\'", "'")
        elif key == "direction":
            direction = value.strip().lower()
            if direction not in SCROLL_DIRECTIONS:
                raise PlanningError(f"非法滚动方向: {value!r}")
            params[key] = direction
        else:
            params[key] = value
    return params


def parse_prediction(prediction: str) -> PlannerOutput:
    """
    把模型原始输出解析为 PlannerOutput。

    先通过 get_summary 去掉 Reflection 段，再取 Thought 与最后一行 Action。
    """
    summary_text = get_summary(prediction)

    thought_match = _THOUGHT_RE.search(summary_text)
    thought = thought_match.group(1).strip() if thought_match else ""

    actions = _ACTION_RE.findall(summary_text)
    if not actions:
        raise PlanningError(f"模型输出中没有 Action: {prediction!r}")
    call = actions[-1].strip()

    call_match = _CALL_RE.match(call)
    if not call_match:
        raise PlanningError(f"无法解析动作: {call!r}")
    verb, args = call_match.groups()
    try:
        action_type = ActionType(verb)
    except ValueError:
        raise PlanningError(f"未知动作: {verb!r}") from None

    params = _parse_params(args)
    if action_type in (ActionType.CLICK, ActionType.LEFT_DOUBLE, ActionType.RIGHT_SINGLE,
                       ActionType.SCROLL, ActionType.DRAG) and "start_box" not in params:
        raise PlanningError(f"{verb} 缺少 start_box")
    if action_type == ActionType.DRAG and "end_box" not in params:
        raise PlanningError("drag 缺少 end_box")

    summaries = _ACTION_SUMMARY_RE.findall(summary_text)
    summary = summaries[-1].strip() if summaries else thought

    return PlannerOutput(
        thought=thought,
        action_type=action_type,
        action_inputs=params,
        summary=summary,
        raw=prediction,
    )


class Planner:
    """规划模块：调用视觉模型决策下一步"""

    def __init__(self, client: AsyncOpenAI, model: str, language: Optional[str] = None):
        self.client = client
        self.model = model
        self.language = language

    def build_messages(
        self,
        instruction: str,
        screenshots: List[str],
        history: List[str],
    ) -> List[Dict[str, Any]]:
        """
        构造对话消息：Prompt + 指令，然后按 截图 / 历史回复 交替排列，
        最后一张截图为当前页面。
        """
        messages: List[Dict[str, Any]] = [
            {
                "role": "user",
                "content": ui_tars_planning_prompt(self.language) + instruction,
            }
        ]
        screenshots = screenshots[-MAX_HISTORY_SCREENSHOTS:]
        history = history[-(len(screenshots) - 1):] if len(screenshots) > 1 else []
        for index, image in enumerate(screenshots):
            messages.append({
                "role": "user",
                "content": [
                    {"type": "image_url", "image_url": {"url": f"data:image/png;base64,{image}"}},
                ],
            })
            if index < len(history):
                messages.append({"role": "assistant", "content": history[index]})
        return messages

    async def plan(
        self,
        instruction: str,
        screenshots: List[str],
        history: List[str],
    ) -> PlannerOutput:
        """根据指令 + 截图历史，输出下一步动作"""
        response = await self.client.chat.completions.create(
            model=self.model,
            temperature=0,
            messages=self.build_messages(instruction, screenshots, history),
        )
        output_str = response.choices[0].message.content or ""
        LOG.debug("planner raw output: %s", output_str)
        return parse_prediction(output_str)
