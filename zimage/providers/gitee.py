"""Gitee 供应商适配器（同步返回 base64 图片）"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..resources import transfer_base64_to_data_url
from ..utils.errors import ConfigurationError, ProviderError
from ..utils.http import DEFAULT_TIMEOUT_SEC, post_json
from ..utils.log import StructuredLogEmitter
from .base import DEFAULT_IMAGE_COST, ProviderAdapter
from .config import (
    GITEE_API_KEY_ENV,
    GITEE_BASE_URL_ENV,
    GITEE_DEFAULT_BASE_URL,
    resolve_base_url,
    resolve_price,
    resolve_setting,
)
from .keys import KeyRotator
from .schema import (
    GenerateResult,
    GenerationRequest,
    GiteeImageResponse,
    ResultType,
    SystemConfig,
)

structured_log = StructuredLogEmitter(logger=logging.getLogger(__name__))

GITEE_DEFAULT_MODEL = "z-image-turbo"


@dataclass(slots=True)
class GiteeAdapter(ProviderAdapter):
    key_rotator: KeyRotator
    timeout_sec: int = DEFAULT_TIMEOUT_SEC
    environ: Mapping[str, str] | None = None
    provider: str = "gitee"
    result_type: ResultType = "gitee-image"
    default_model: str = GITEE_DEFAULT_MODEL

    def build_payload(self, request: GenerationRequest) -> dict[str, Any]:
        """构造 Gitee 生图请求体，未提供的可选字段不传。"""
        payload: dict[str, Any] = {
            "prompt": request.prompt,
            "model": request.model or self.default_model,
        }
        if request.size:
            payload["size"] = request.size
        if request.num_inference_steps:
            payload["num_inference_steps"] = request.num_inference_steps
        return payload

    async def generate(
        self, request: GenerationRequest, config: SystemConfig
    ) -> GenerateResult:
        raw_keys = resolve_setting(
            config.gitee_api_key, GITEE_API_KEY_ENV, self.environ
        )
        if not raw_keys:
            raise ConfigurationError(
                "Gitee API key is not configured.",
                detail={"provider": self.provider},
            )
        api_key = self.key_rotator.next_key(self.provider, raw_keys)
        base_url = resolve_base_url(
            config.gitee_base_url,
            GITEE_BASE_URL_ENV,
            GITEE_DEFAULT_BASE_URL,
            self.environ,
        )

        payload = self.build_payload(request)
        structured_log.info(
            "gitee.generate.start",
            {"model": payload["model"], "size": request.size},
        )

        response = await post_json(
            url=f"{base_url}v1/images/generations",
            payload=payload,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout_sec=self.timeout_sec,
            source="Gitee",
        )
        data = response["data"]
        elapsed_ms = response["elapsed_ms"]

        image = GiteeImageResponse.parse(data)
        if image is None:
            raise ProviderError(
                "Gitee API returned success but no image data.",
                detail={
                    "provider": self.provider,
                    "response_keys": sorted(data.keys()),
                },
            )

        cost = resolve_price(config.pricing.gitee_image, DEFAULT_IMAGE_COST)
        structured_log.info(
            "gitee.generate.done",
            {"cost": cost, "elapsed_ms": elapsed_ms},
        )
        return GenerateResult(
            type=self.result_type,
            url=transfer_base64_to_data_url(image.mime, image.b64_json),
            cost=cost,
        )
