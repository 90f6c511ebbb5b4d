from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from .providers.base import ProviderAdapter
from .providers.config import ConfigLoader, read_system_config
from .providers.factory import (
    AdapterDependencies,
    build_provider_adapters,
    resolve_channel,
)
from .providers.keys import KeyRotator
from .providers.polling import (
    TASK_POLL_INTERVAL_SEC,
    TASK_POLL_MAX_ATTEMPTS,
    ModelScopeTaskPoller,
    Sleep,
)
from .providers.references import ImageUploader, ReferenceResolver
from .providers.schema import Channel, GenerateResult, GenerationRequest
from .utils.http import DEFAULT_TIMEOUT_SEC
from .utils.id import generate_id
from .utils.log import StructuredLogEmitter

structured_log = StructuredLogEmitter(logger=logging.getLogger(__name__))


class ZImageDispatcher:
    """统一生图入口：按渠道选择适配器并返回归一化结果。

    调度器持有唯一的 `KeyRotator`，同一进程内应共享一个实例，
    这样密钥轮询才能跨请求生效。
    """

    def __init__(
        self,
        *,
        config_loader: ConfigLoader,
        upload_image: ImageUploader | None = None,
        key_rotator: KeyRotator | None = None,
        timeout_sec: int = DEFAULT_TIMEOUT_SEC,
        poll_sleep: Sleep = asyncio.sleep,
        poll_interval_sec: float = TASK_POLL_INTERVAL_SEC,
        poll_max_attempts: int = TASK_POLL_MAX_ATTEMPTS,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        # 通过依赖注入接收配置读取与图床上传，避免直接耦合宿主实现细节。
        self._config_loader = config_loader
        self.key_rotator = key_rotator or KeyRotator()
        deps = AdapterDependencies(
            key_rotator=self.key_rotator,
            reference_resolver=ReferenceResolver(uploader=upload_image),
            poller=ModelScopeTaskPoller(
                sleep=poll_sleep,
                interval_sec=poll_interval_sec,
                max_attempts=poll_max_attempts,
                timeout_sec=timeout_sec,
            ),
            timeout_sec=timeout_sec,
            environ=environ,
        )
        self._adapters: dict[Channel, ProviderAdapter] = build_provider_adapters(deps)

    def get_adapter(self, channel: str | None) -> ProviderAdapter:
        return self._adapters[resolve_channel(channel)]

    async def generate(
        self, request: GenerationRequest | Mapping[str, Any]
    ) -> GenerateResult:
        """执行一次生图；错误原样抛给调用方，不做跨渠道回退。"""
        if not isinstance(request, GenerationRequest):
            request = GenerationRequest.from_dict(request)

        request_id = generate_id()
        config = read_system_config(await self._config_loader())
        adapter = self.get_adapter(request.channel)
        structured_log.info(
            "dispatch.start",
            {
                "request_id": request_id,
                "channel": adapter.provider,
                "model": request.model,
                "reference_count": len(request.images),
            },
        )

        result = await adapter.generate(request, config)

        structured_log.info(
            "dispatch.done",
            {
                "request_id": request_id,
                "type": result.type,
                "cost": result.cost,
            },
        )
        return result
