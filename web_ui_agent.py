"""命令行演示：打开页面并用自然语言指令驱动它

用法：
    python web_ui_agent.py "在搜索框输入 Playwright 并提交" https://cn.bing.com
"""

import argparse
import asyncio
import logging

from playwright.async_api import async_playwright

from webai import AgentOptions, PageAgent, Settings
from webai.idle import wait_for_network_idle


async def run_agent(instruction: str, start_url: str, headless: bool = False) -> None:
    settings = Settings.from_env()
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=headless)
        page = await browser.new_page()
        await page.goto(start_url)
        await wait_for_network_idle(page, settings.network_idle_timeout_ms)

        agent = PageAgent(
            page,
            AgentOptions(
                test_id="cli",
                cache_id=f"cli({instruction})",
                group_name=instruction,
                group_description=start_url,
            ),
            settings=settings,
        )
        try:
            steps = await agent.ai_action(instruction)
            for index, step in enumerate(steps, 1):
                print(f"Step {index}: {step.action_type.value} - {step.summary}")
        finally:
            await browser.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="用自然语言驱动网页")
    parser.add_argument("instruction", help="任务指令")
    parser.add_argument("url", help="起始网址")
    parser.add_argument("--headless", action="store_true")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(name)s] %(levelname)s %(message)s",
    )
    asyncio.run(run_agent(args.instruction, args.url, headless=args.headless))


if __name__ == "__main__":
    main()
