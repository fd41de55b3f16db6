"""配置：从 .env / 环境变量读取"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .prompt import LANGUAGE

# 加载 .env 文件中的环境变量
load_dotenv()

DEFAULT_MODEL_NAME = "ui-tars-72b-sft"
DEFAULT_NETWORK_IDLE_TIMEOUT_MS = 20000
DEFAULT_MAX_STEPS = 20


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"环境变量 {name} 必须是整数，实际为 {raw!r}") from None


@dataclass
class Settings:
    """Agent 与 fixture 的运行配置"""
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    model_name: str = DEFAULT_MODEL_NAME
    language: str = LANGUAGE
    network_idle_timeout_ms: int = DEFAULT_NETWORK_IDLE_TIMEOUT_MS
    max_steps: int = DEFAULT_MAX_STEPS

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_key=os.getenv("OPENAI_API_KEY") or None,
            base_url=os.getenv("OPENAI_BASE_URL") or None,
            model_name=os.getenv("MIDSCENE_MODEL_NAME", DEFAULT_MODEL_NAME),
            language=os.getenv("MIDSCENE_PREFERRED_LANGUAGE") or LANGUAGE,
            network_idle_timeout_ms=_int_env(
                "MIDSCENE_NETWORK_IDLE_TIMEOUT_MS", DEFAULT_NETWORK_IDLE_TIMEOUT_MS
            ),
            max_steps=_int_env("MIDSCENE_MAX_STEPS", DEFAULT_MAX_STEPS),
        )
