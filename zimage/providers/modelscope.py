"""ModelScope 供应商适配器

同步模型直接返回图片 URL；异步模型返回 task_id，需要轮询任务状态。
两种模式最终都会下载图片并重新编码为 data URL。
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..resources import transfer_bytes_to_data_url
from ..utils.errors import ConfigurationError, ProviderError, ValidationError
from ..utils.http import DEFAULT_TIMEOUT_SEC, get_bytes, post_json
from ..utils.log import StructuredLogEmitter
from .base import DEFAULT_IMAGE_COST, ProviderAdapter
from .config import (
    MODELSCOPE_DEFAULT_BASE_URL,
    ZIMAGE_API_KEY_ENV,
    ZIMAGE_BASE_URL_ENV,
    resolve_base_url,
    resolve_price,
    resolve_setting,
)
from .keys import KeyRotator
from .polling import ModelScopeTaskPoller
from .references import ReferenceResolver
from .schema import (
    GenerateResult,
    GenerationRequest,
    ModelScopeAsyncResponse,
    ModelScopeImageResponse,
    ResultType,
    SystemConfig,
)

structured_log = StructuredLogEmitter(logger=logging.getLogger(__name__))

MODELSCOPE_DEFAULT_MODEL = "Tongyi-MAI/Z-Image-Turbo"
DOWNLOAD_DEFAULT_MIME = "image/jpeg"

ASYNC_MODELS = frozenset(
    {
        "Qwen/Qwen-Image-Edit-2509",
        "Qwen/Qwen-Image",
        "black-forest-labs/FLUX.2-dev",
    }
)
REQUIRE_REFERENCE_MODELS = frozenset(
    {
        "Qwen/Qwen-Image-Edit-2509",
    }
)


def is_async_model(model_id: str) -> bool:
    return model_id in ASYNC_MODELS


@dataclass(slots=True)
class ModelScopeAdapter(ProviderAdapter):
    key_rotator: KeyRotator
    reference_resolver: ReferenceResolver = field(default_factory=ReferenceResolver)
    poller: ModelScopeTaskPoller = field(default_factory=ModelScopeTaskPoller)
    timeout_sec: int = DEFAULT_TIMEOUT_SEC
    environ: Mapping[str, str] | None = None
    provider: str = "modelscope"
    result_type: ResultType = "zimage-image"
    default_model: str = MODELSCOPE_DEFAULT_MODEL

    def build_payload(
        self,
        request: GenerationRequest,
        *,
        model_id: str,
        image_urls: list[str],
    ) -> dict[str, Any]:
        """构造 ModelScope 生图请求体，未提供的可选字段不传。"""
        payload: dict[str, Any] = {
            "model": model_id,
            "prompt": request.prompt,
        }
        if request.size:
            payload["size"] = request.size
        if request.loras:
            payload["loras"] = request.loras
        if image_urls:
            payload["image_url"] = list(image_urls)
        return payload

    async def _download_as_data_url(self, image_url: str) -> str:
        response = await get_bytes(
            url=image_url,
            timeout_sec=self.timeout_sec,
            source="ModelScope image download",
        )
        if not response["data"]:
            raise ProviderError(
                "ModelScope image download returned empty content.",
                detail={"url": image_url},
            )
        mime = response["mime"] or DOWNLOAD_DEFAULT_MIME
        return transfer_bytes_to_data_url(mime, response["data"])

    async def generate(
        self, request: GenerationRequest, config: SystemConfig
    ) -> GenerateResult:
        raw_keys = resolve_setting(
            config.zimage_api_key, ZIMAGE_API_KEY_ENV, self.environ
        )
        if not raw_keys:
            raise ConfigurationError(
                "ModelScope API key is not configured.",
                detail={"provider": self.provider},
            )
        # 同一个 key 既用于提交也用于轮询，任务只能由所属账号查询。
        api_key = self.key_rotator.next_key(self.provider, raw_keys)
        base_url = resolve_base_url(
            config.zimage_base_url,
            ZIMAGE_BASE_URL_ENV,
            MODELSCOPE_DEFAULT_BASE_URL,
            self.environ,
        )

        model_id = request.model or self.default_model
        use_async = is_async_model(model_id)
        structured_log.info(
            "modelscope.generate.start",
            {"model": model_id, "size": request.size, "async": use_async},
        )

        image_urls = (
            await self.reference_resolver.resolve(request.images, config)
            if request.images
            else []
        )
        if model_id in REQUIRE_REFERENCE_MODELS and not image_urls:
            raise ValidationError(
                f"Model '{model_id}' requires a reference image.",
                detail={"model": model_id},
            )

        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        if use_async:
            headers["X-ModelScope-Async-Mode"] = "true"

        response = await post_json(
            url=f"{base_url}v1/images/generations",
            payload=self.build_payload(
                request, model_id=model_id, image_urls=image_urls
            ),
            headers=headers,
            timeout_sec=self.timeout_sec,
            source="ModelScope",
        )
        data = response["data"]

        if use_async:
            submitted = ModelScopeAsyncResponse.parse(data)
            if submitted is None:
                raise ProviderError(
                    "ModelScope API returned no task id.",
                    detail={
                        "provider": self.provider,
                        "response_keys": sorted(data.keys()),
                    },
                )
            image_url = await self.poller.poll(base_url, api_key, submitted.task_id)
        else:
            image = ModelScopeImageResponse.parse(data)
            if image is None:
                raise ProviderError(
                    "ModelScope API returned success but no image.",
                    detail={
                        "provider": self.provider,
                        "response_keys": sorted(data.keys()),
                    },
                )
            image_url = image.url

        data_url = await self._download_as_data_url(image_url)
        cost = resolve_price(config.pricing.zimage_image, DEFAULT_IMAGE_COST)
        structured_log.info(
            "modelscope.generate.done",
            {"model": model_id, "async": use_async, "cost": cost},
        )
        return GenerateResult(type=self.result_type, url=data_url, cost=cost)
