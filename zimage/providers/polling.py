"""ModelScope 异步任务轮询。

状态机：
- PENDING / RUNNING / 其他任意字符串：非终态，等待后继续轮询
- SUCCEED：终态，返回首张输出图片 URL
- FAILED：终态，抛出 ProviderError

轮询次数用尽仍未进入终态时抛出 TaskTimeoutError。
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from ..utils.errors import ProviderError, TaskTimeoutError
from ..utils.http import DEFAULT_TIMEOUT_SEC, get_json
from ..utils.log import StructuredLogEmitter
from .schema import ModelScopeTaskResponse

structured_log = StructuredLogEmitter(logger=logging.getLogger(__name__))

TASK_POLL_INTERVAL_SEC = 5.0
TASK_POLL_MAX_ATTEMPTS = 60

Sleep = Callable[[float], Awaitable[None]]


class TaskStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCEED = "SUCCEED"
    FAILED = "FAILED"


_IN_PROGRESS_STATUSES = frozenset({TaskStatus.PENDING, TaskStatus.RUNNING})


class ModelScopeTaskPoller:
    def __init__(
        self,
        *,
        sleep: Sleep = asyncio.sleep,
        interval_sec: float = TASK_POLL_INTERVAL_SEC,
        max_attempts: int = TASK_POLL_MAX_ATTEMPTS,
        timeout_sec: int = DEFAULT_TIMEOUT_SEC,
    ) -> None:
        if max_attempts <= 0:
            raise ValueError("max_attempts must be > 0.")
        self._sleep = sleep
        self._interval_sec = interval_sec
        self._max_attempts = max_attempts
        self._timeout_sec = timeout_sec

    async def _fetch(
        self, base_url: str, api_key: str, task_id: str
    ) -> ModelScopeTaskResponse:
        response = await get_json(
            url=f"{base_url}v1/tasks/{task_id}",
            headers={
                "Authorization": f"Bearer {api_key}",
                "X-ModelScope-Task-Type": "image_generation",
            },
            timeout_sec=self._timeout_sec,
            source="ModelScope task",
        )
        return ModelScopeTaskResponse.parse(response["data"])

    async def poll(self, base_url: str, api_key: str, task_id: str) -> str:
        """轮询直到任务进入终态，返回输出图片 URL。"""
        for attempt in range(1, self._max_attempts + 1):
            task = await self._fetch(base_url, api_key, task_id)
            structured_log.debug(
                "modelscope.task.poll",
                {
                    "task_id": task_id,
                    "attempt": attempt,
                    "task_status": task.task_status,
                },
            )

            if task.task_status == TaskStatus.SUCCEED:
                if not task.output_images:
                    raise ProviderError(
                        "ModelScope task succeeded but returned no image.",
                        detail={"task_id": task_id},
                    )
                return task.output_images[0]

            if task.task_status == TaskStatus.FAILED:
                raise ProviderError(
                    task.message or "ModelScope task failed.",
                    provider_message=task.message,
                    retryable=False,
                    detail={"task_id": task_id},
                )

            # 未知状态同样视为进行中，供应商可能新增临时状态。
            if task.task_status not in _IN_PROGRESS_STATUSES:
                structured_log.warning(
                    "modelscope.task.unknown_status",
                    {
                        "task_id": task_id,
                        "attempt": attempt,
                        "task_status": task.task_status,
                    },
                )
            if attempt < self._max_attempts:
                await self._sleep(self._interval_sec)

        raise TaskTimeoutError(
            "ModelScope task timed out.",
            detail={
                "task_id": task_id,
                "max_attempts": self._max_attempts,
                "interval_sec": self._interval_sec,
            },
        )
