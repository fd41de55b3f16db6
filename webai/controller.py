"""执行模块：在页面上执行 UI-TARS 动作"""

import asyncio
import logging
from typing import Dict, Sequence, Tuple

from playwright.async_api import Page

from .models import ActionType, PlannerOutput

LOG = logging.getLogger(__name__)

# UI-TARS 输出的坐标归一化到 0-1000
COORDINATE_SCALE = 1000
WAIT_SECONDS = 5
SCROLL_DELTA = 500

_HOTKEY_ALIASES = {
    "ctrl": "Control",
    "control": "Control",
    "cmd": "Meta",
    "command": "Meta",
    "meta": "Meta",
    "alt": "Alt",
    "shift": "Shift",
    "enter": "Enter",
    "return": "Enter",
    "esc": "Escape",
    "escape": "Escape",
    "tab": "Tab",
    "space": "Space",
    "backspace": "Backspace",
    "delete": "Delete",
    "pageup": "PageUp",
    "pagedown": "PageDown",
    "up": "ArrowUp",
    "down": "ArrowDown",
    "left": "ArrowLeft",
    "right": "ArrowRight",
}


def box_center(box: Sequence[float], viewport: Dict[str, int]) -> Tuple[float, float]:
    """把 0-1000 归一化的坐标框换算成视口像素中心点"""
    x1, y1, x2, y2 = box
    x = (x1 + x2) / 2 / COORDINATE_SCALE * viewport["width"]
    y = (y1 + y2) / 2 / COORDINATE_SCALE * viewport["height"]
    return round(x, 2), round(y, 2)


def normalize_hotkey(key: str) -> str:
    """'ctrl c' / 'ctrl+c' -> 'Control+c'"""
    parts = [p for p in key.replace("+", " ").split() if p]
    return "+".join(_HOTKEY_ALIASES.get(p.lower(), p) for p in parts)


class Controller:
    """执行模块：执行模型决策的动作"""

    def __init__(self, page: Page):
        self.page = page

    async def execute(self, decision: PlannerOutput, viewport: Dict[str, int]) -> bool:
        """
        执行决策，返回是否成功。终止动作（finished / call_user）不操作页面。
        """
        action = decision.action_type
        inputs = decision.action_inputs

        if action.is_terminal:
            return True

        try:
            if action == ActionType.CLICK:
                await self.page.mouse.click(*box_center(inputs["start_box"], viewport))
            elif action == ActionType.LEFT_DOUBLE:
                await self.page.mouse.dblclick(*box_center(inputs["start_box"], viewport))
            elif action == ActionType.RIGHT_SINGLE:
                await self.page.mouse.click(
                    *box_center(inputs["start_box"], viewport), button="right"
                )
            elif action == ActionType.DRAG:
                await self._drag(inputs["start_box"], inputs["end_box"], viewport)
            elif action == ActionType.HOTKEY:
                await self._hotkey(inputs.get("key", ""))
            elif action == ActionType.TYPE:
                await self._type(inputs.get("content", ""))
            elif action == ActionType.SCROLL:
                await self._scroll(inputs["start_box"], inputs.get("direction", "down"), viewport)
            elif action == ActionType.WAIT:
                await asyncio.sleep(WAIT_SECONDS)
            LOG.info("executed %s %s", action.value, inputs)
            return True
        except Exception as e:
            LOG.warning("action %s failed: %s", action.value, e)
            return False

    async def _drag(self, start_box, end_box, viewport: Dict[str, int]) -> None:
        start_x, start_y = box_center(start_box, viewport)
        end_x, end_y = box_center(end_box, viewport)
        await self.page.mouse.move(start_x, start_y)
        await self.page.mouse.down()
        await self.page.mouse.move(end_x, end_y, steps=10)
        await self.page.mouse.up()

    async def _hotkey(self, key: str) -> None:
        combo = normalize_hotkey(key)
        if not combo:
            raise ValueError("hotkey 缺少 key")
        await self.page.keyboard.press(combo)

    async def _type(self, content: str) -> None:
        """末尾的换行表示提交"""
        submit = content.endswith("\n")
        text = content.rstrip("\n") if submit else content
        if text:
            await self.page.keyboard.type(text)
        if submit:
            await self.page.keyboard.press("Enter")

    async def _scroll(self, start_box, direction: str, viewport: Dict[str, int]) -> None:
        x, y = box_center(start_box, viewport)
        await self.page.mouse.move(x, y)
        delta_x, delta_y = {
            "up": (0, -SCROLL_DELTA),
            "down": (0, SCROLL_DELTA),
            "left": (-SCROLL_DELTA, 0),
            "right": (SCROLL_DELTA, 0),
        }[direction]
        await self.page.mouse.wheel(delta_x, delta_y)
