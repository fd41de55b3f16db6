"""等待页面网络空闲"""

import logging

from playwright.async_api import Page

from .config import DEFAULT_NETWORK_IDLE_TIMEOUT_MS

LOG = logging.getLogger(__name__)


async def wait_for_network_idle(page: Page, timeout: float = DEFAULT_NETWORK_IDLE_TIMEOUT_MS) -> None:
    """尽力等待 networkidle，超时或出错只记录警告，不阻塞后续操作"""
    try:
        await page.wait_for_load_state("networkidle", timeout=timeout)
    except Exception as e:
        LOG.warning("Network idle timeout exceeded: %s", e)
