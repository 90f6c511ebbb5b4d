from __future__ import annotations

import json
from collections.abc import Mapping
from enum import Enum
from typing import Any

from .log import summarize_log_value


class ZImageErrorCode(str, Enum):
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UPLOAD_ERROR = "UPLOAD_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"


class ZImageError(Exception):
    code: ZImageErrorCode = ZImageErrorCode.UPSTREAM_ERROR
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        code: ZImageErrorCode | None = None,
        retryable: bool | None = None,
        detail: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code
        self.message = message
        self.retryable = self.default_retryable if retryable is None else retryable
        self.detail = dict(detail) if detail else {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
            "detail": self.detail,
        }

    def __str__(self) -> str:
        base = f"[{self.code.value}] {self.message} (retryable={self.retryable})"
        if not self.detail:
            return base
        detail_json = json.dumps(
            summarize_log_value(self.detail), ensure_ascii=False, default=str
        )
        return f"{base} detail={detail_json}"


class ConfigurationError(ZImageError):
    """凭据或配置缺失/非法，需要重新配置后才能继续。"""

    code = ZImageErrorCode.CONFIGURATION_ERROR


class ValidationError(ZImageError):
    """请求不满足模型前置条件，例如缺少必需的参考图。"""

    code = ZImageErrorCode.VALIDATION_ERROR


class UploadError(ZImageError):
    """参考图上传图床失败。"""

    code = ZImageErrorCode.UPLOAD_ERROR
    default_retryable = True


class NetworkError(ZImageError):
    """传输层错误：连接失败或单次 HTTP 请求超时。"""

    code = ZImageErrorCode.NETWORK_ERROR
    default_retryable = True


class ProviderError(ZImageError):
    """上游返回非 2xx 状态或成功响应结构不合法。"""

    code = ZImageErrorCode.UPSTREAM_ERROR

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        provider_message: str = "",
        retryable: bool | None = None,
        detail: Mapping[str, Any] | None = None,
    ) -> None:
        if retryable is None:
            retryable = status_code is None or status_code >= 500 or status_code == 429
        super().__init__(message, retryable=retryable, detail=detail)
        self.status_code = status_code
        self.provider_message = provider_message


class TaskTimeoutError(ZImageError, TimeoutError):
    """异步任务在轮询次数用尽前未进入终态。"""

    code = ZImageErrorCode.TIMEOUT
    default_retryable = True
