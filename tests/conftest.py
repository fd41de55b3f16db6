from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

pytest_plugins = ["pytester"]


def make_page(viewport: dict | None = None) -> MagicMock:
    page = MagicMock()
    page.viewport_size = viewport or {"width": 1000, "height": 800}
    page.wait_for_load_state = AsyncMock(return_value=None)
    page.screenshot = AsyncMock(return_value=b"\x89PNG fake")
    page.evaluate = AsyncMock(return_value={"width": 1000, "height": 800})
    page.mouse.click = AsyncMock()
    page.mouse.dblclick = AsyncMock()
    page.mouse.move = AsyncMock()
    page.mouse.down = AsyncMock()
    page.mouse.up = AsyncMock()
    page.mouse.wheel = AsyncMock()
    page.keyboard.press = AsyncMock()
    page.keyboard.type = AsyncMock()
    return page


def completion(text: str) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


def make_client(*replies: str) -> MagicMock:
    client = MagicMock()
    client.chat.completions.create = AsyncMock(side_effect=[completion(r) for r in replies])
    return client


class FakeAgent:
    def __init__(self, page=None, options=None):  # noqa: ANN001
        self.page = page
        self.options = options
        self.ai = AsyncMock(return_value="ai-result")
        self.ai_action = AsyncMock(return_value=["step"])
        self.ai_query = AsyncMock(return_value={"title": "Hello"})
        self.ai_assert = AsyncMock(return_value=None)
        self.ai_wait_for = AsyncMock(return_value=None)
        self.dump_count = 0

    def dump_data_string(self) -> str:
        self.dump_count += 1
        return f'{{"dump": {self.dump_count}}}'


@pytest.fixture
def page() -> MagicMock:
    return make_page()
