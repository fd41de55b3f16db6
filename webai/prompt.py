"""UI-TARS 规划 Prompt 与模型输出摘要"""

import os
import re
import time
from typing import Optional, Tuple

CHINA_TIMEZONE = "Asia/Shanghai"

_REFLECTION_RE = re.compile(r"Reflection:[\s\S]*?(?=Action_Summary:|Action:|$)")


def resolve_timezone() -> str:
    """
    解析系统时区名（IANA 格式）。

    顺序：TZ 环境变量 → /etc/localtime 链接目标 → /etc/timezone 文件 → time.tzname。
    """
    tz = os.environ.get("TZ", "").lstrip(":").strip()
    if tz:
        return tz
    try:
        target = os.path.realpath("/etc/localtime")
        if "zoneinfo/" in target:
            return target.split("zoneinfo/", 1)[1]
    except OSError:
        pass
    try:
        with open("/etc/timezone", encoding="utf-8") as f:
            name = f.read().strip()
            if name:
                return name
    except OSError:
        pass
    return time.tzname[0]


def get_timezone_info() -> Tuple[str, bool]:
    """返回 (UTC 偏移标签, 是否为中国时区)"""
    offset = -(time.altzone if time.localtime().tm_isdst > 0 else time.timezone) / 3600
    offset_str = f"{offset:g}"
    label = f"UTC{'+' if offset >= 0 else ''}{offset_str}"
    return label, resolve_timezone() == CHINA_TIMEZONE


def language_for_timezone(timezone: str) -> str:
    return "Chinese" if timezone == CHINA_TIMEZONE else "English"


# 进程启动时计算一次；之后系统时区变化不会反映到这里，
# 需要时通过 Settings.language 显式传入。
LANGUAGE = "Chinese" if get_timezone_info()[1] else "English"


def ui_tars_planning_prompt(language: Optional[str] = None) -> str:
    """构造 UI-TARS 规划 Prompt，文本需与模型微调时的格式逐字一致"""
    language = language or LANGUAGE
    return f"""
You are a GUI agent. You are given a task and your action history, with screenshots. You need to perform the next action to complete the task. 

## Output Format
```
Thought: ...
Action: ...
```

## Action Space
click(start_box='[x1, y1, x2, y2]')
left_double(start_box='[x1, y1, x2, y2]')
right_single(start_box='[x1, y1, x2, y2]')
drag(start_box='[x1, y1, x2, y2]', end_box='[x3, y3, x4, y4]')
hotkey(key='')
type(content='') #If you want to submit your input, use "\\n" at the end of `content`.
scroll(start_box='[x1, y1, x2, y2]', direction='down or up or right or left')
wait() #Sleep for 5s and take a screenshot to check for any changes.
finished()
call_user() # Submit the task and call the user when the task is unsolvable, or when you need the user's help.

## Note
- Use {language} in `Thought` part.
- Write a small plan and finally summarize your next action (with its target element) in one sentence in `Thought` part.

## User Instruction
"""


UI_TARS_PLANNING_PROMPT = ui_tars_planning_prompt(LANGUAGE)


def get_summary(prediction: str) -> str:
    """去掉模型输出中的 Reflection 段落，得到动作摘要"""
    return _REFLECTION_RE.sub("", prediction).strip()
