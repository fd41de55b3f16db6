"""感知模块：截取页面截图与视口尺寸"""

import base64
from dataclasses import dataclass
from typing import Dict

from playwright.async_api import Page

DEFAULT_VIEWPORT = {"width": 1280, "height": 720}


@dataclass
class PageSnapshot:
    screenshot_base64: str
    viewport: Dict[str, int]


class Perception:
    """
    感知模块：模型只看截图，不读取 DOM。
    """

    async def viewport_size(self, page: Page) -> Dict[str, int]:
        size = page.viewport_size
        if size:
            return {"width": size["width"], "height": size["height"]}
        # 无固定 viewport 时从页面读取
        return await page.evaluate(
            "() => ({ width: window.innerWidth, height: window.innerHeight })"
        )

    async def capture(self, page: Page) -> PageSnapshot:
        """截取当前视口，返回 base64 PNG 与视口尺寸"""
        image = await page.screenshot(type="png")
        viewport = await self.viewport_size(page)
        return PageSnapshot(
            screenshot_base64=base64.b64encode(image).decode("ascii"),
            viewport=viewport or dict(DEFAULT_VIEWPORT),
        )
