"""记忆模块：保存每次调用的任务记录，生成报告 dump"""

import json
import time
from dataclasses import asdict
from typing import List, Optional

from .models import AgentOptions, ExecutionDump, TaskRecord


class Memory:
    """记忆模块：保存执行历史，供报告使用"""

    def __init__(self, options: AgentOptions):
        self.options = options
        self.executions: List[ExecutionDump] = []

    def start_execution(self, name: str) -> ExecutionDump:
        """开始记录一次 Agent 调用"""
        execution = ExecutionDump(name=name, log_time=time.time())
        self.executions.append(execution)
        return execution

    def start_task(self, execution: ExecutionDump, type: str, sub_type: str, param=None) -> TaskRecord:
        task = TaskRecord(type=type, sub_type=sub_type, param=param, started_at=time.time())
        execution.tasks.append(task)
        return task

    def finish_task(self, task: TaskRecord, output=None, thought: Optional[str] = None,
                    error: Optional[BaseException] = None) -> None:
        task.cost_ms = int((time.time() - task.started_at) * 1000)
        task.output = output
        if thought is not None:
            task.thought = thought
        if error is not None:
            task.status = "failed"
            task.error = str(error)
        else:
            task.status = "finished"

    def to_dict(self) -> dict:
        return {
            "groupName": self.options.group_name,
            "groupDescription": self.options.group_description,
            "testId": self.options.test_id,
            "cacheId": self.options.cache_id,
            "executions": [asdict(e) for e in self.executions],
        }

    def dump_data_string(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)
