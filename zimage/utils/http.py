from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, TypedDict

import aiohttp

from .dicts import get_dict_value
from .errors import NetworkError, ProviderError, ZImageErrorCode
from .log import StructuredLogEmitter

logger = logging.getLogger(__name__)
structured_log = StructuredLogEmitter(logger=logger)

DEFAULT_TIMEOUT_SEC = 60


class JsonSuccessResponse(TypedDict):
    data: dict[str, Any]
    elapsed_ms: int


class BytesSuccessResponse(TypedDict):
    data: bytes
    mime: str
    elapsed_ms: int


def _mask_headers(headers: dict[str, str]) -> dict[str, str]:
    secret_keys = {"authorization", "cookie", "set-cookie", "x-api-key"}
    masked: dict[str, str] = {}
    for key, value in headers.items():
        if key.lower() in secret_keys:
            masked[key] = "<redacted>"
            continue
        masked[key] = value
    return masked


def normalize_content_type(content_type: str) -> str:
    """规范化 content-type，去掉参数并转为小写。"""
    return content_type.split(";", 1)[0].strip().lower()


def extract_error_message(raw_text: str) -> str:
    """从错误响应体中提取可读信息：error.message > message > 原始文本。"""
    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError:
        return raw_text

    for candidate in (
        get_dict_value(data, "error", "message"),
        get_dict_value(data, "message"),
    ):
        if isinstance(candidate, str) and candidate:
            return candidate
    return raw_text


def _elapsed_ms(started_at: float) -> int:
    return int((time.perf_counter() - started_at) * 1000)


def _raise_for_status(
    status: int,
    raw_text: str,
    *,
    source: str,
    detail: dict[str, Any],
) -> None:
    # HTTP 错误由状态码判断，保留响应片段用于问题定位。
    if 200 <= status < 300:
        return
    provider_message = extract_error_message(raw_text)
    raise ProviderError(
        f"{source} HTTP {status}: {provider_message}",
        status_code=status,
        provider_message=provider_message,
        detail={**detail, "status_code": status, "body": raw_text},
    )


def _parse_json_object(
    raw_text: str,
    *,
    source: str,
    detail: dict[str, Any],
) -> dict[str, Any]:
    # 网络链路成功后再解析 JSON，便于区分“传输错误”与“响应格式错误”。
    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError as exc:
        raise ProviderError(
            f"{source} returned invalid JSON.",
            detail={**detail, "body": raw_text},
        ) from exc

    if not isinstance(data, dict):
        raise ProviderError(
            f"{source} response must be a JSON object.",
            detail={**detail, "response_type": type(data).__name__},
        )
    return data


async def _request_text(
    method: str,
    *,
    url: str,
    headers: dict[str, str],
    payload: dict[str, Any] | None,
    timeout_sec: int,
    source: str,
) -> tuple[int, str, int, dict[str, Any]]:
    """发送请求并返回 `(status, body, elapsed_ms, request_detail)`。

    传输层错误统一映射为 `NetworkError`（code 为 NETWORK_ERROR 或 TIMEOUT）。
    """
    if timeout_sec <= 0:
        raise ValueError("timeout_sec must be > 0.")

    started_at = time.perf_counter()
    request_detail: dict[str, Any] = {
        "source": source,
        "method": method,
        "url": url,
        "timeout_sec": timeout_sec,
        "headers": _mask_headers(headers),
    }
    if payload is not None:
        request_detail["payload"] = payload
    structured_log.debug("http.request", request_detail)

    # 使用 total timeout，覆盖连接、读写和响应等待总耗时。
    timeout = aiohttp.ClientTimeout(total=timeout_sec)
    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.request(
                method, url, json=payload, headers=headers
            ) as response:
                raw_text = await response.text(errors="replace")
                elapsed_ms = _elapsed_ms(started_at)
                structured_log.debug(
                    "http.response",
                    {
                        "elapsed_ms": elapsed_ms,
                        "status_code": response.status,
                        "headers": _mask_headers(dict(response.headers)),
                        "body": raw_text,
                    },
                )
                return response.status, raw_text, elapsed_ms, request_detail
    except asyncio.TimeoutError as exc:
        raise NetworkError(
            f"{source} request timed out.",
            code=ZImageErrorCode.TIMEOUT,
            detail={**request_detail, "elapsed_ms": _elapsed_ms(started_at)},
        ) from exc
    except aiohttp.ClientError as exc:
        raise NetworkError(
            f"{source} request failed.",
            detail={
                **request_detail,
                "elapsed_ms": _elapsed_ms(started_at),
                "client_error": str(exc),
                "client_error_type": type(exc).__name__,
            },
        ) from exc


async def post_json(
    *,
    url: str,
    payload: dict[str, Any],
    headers: dict[str, str],
    timeout_sec: int = DEFAULT_TIMEOUT_SEC,
    source: str = "Upstream",
) -> JsonSuccessResponse:
    """发送 JSON POST 请求并返回结果对象。

    约定：
    - 传输层错误映射为 `NetworkError`
    - 非 2xx HTTP 响应映射为 `ProviderError`，携带状态码与上游错误信息
    - 成功响应必须是 JSON object（dict）
    - 成功返回结构：`{"data": <json_object>, "elapsed_ms": <int>}`
    """
    status, raw_text, elapsed_ms, detail = await _request_text(
        "POST",
        url=url,
        headers=headers,
        payload=payload,
        timeout_sec=timeout_sec,
        source=source,
    )
    _raise_for_status(status, raw_text, source=source, detail=detail)
    data = _parse_json_object(raw_text, source=source, detail=detail)
    return {"data": data, "elapsed_ms": elapsed_ms}


async def get_json(
    *,
    url: str,
    headers: dict[str, str],
    timeout_sec: int = DEFAULT_TIMEOUT_SEC,
    source: str = "Upstream",
) -> JsonSuccessResponse:
    """发送 GET 请求并解析 JSON object，错误约定与 `post_json` 一致。"""
    status, raw_text, elapsed_ms, detail = await _request_text(
        "GET",
        url=url,
        headers=headers,
        payload=None,
        timeout_sec=timeout_sec,
        source=source,
    )
    _raise_for_status(status, raw_text, source=source, detail=detail)
    data = _parse_json_object(raw_text, source=source, detail=detail)
    return {"data": data, "elapsed_ms": elapsed_ms}


async def get_bytes(
    *,
    url: str,
    timeout_sec: int = DEFAULT_TIMEOUT_SEC,
    source: str = "Download",
) -> BytesSuccessResponse:
    """下载二进制资源，返回内容与响应头中的 MIME（已去掉参数，可能为空）。"""
    if timeout_sec <= 0:
        raise ValueError("timeout_sec must be > 0.")

    started_at = time.perf_counter()
    request_detail = {"source": source, "url": url, "timeout_sec": timeout_sec}
    structured_log.debug("http.request", request_detail)

    timeout = aiohttp.ClientTimeout(total=timeout_sec)
    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url) as response:
                if response.status >= 300:
                    raw_text = await response.text(errors="replace")
                    _raise_for_status(
                        response.status,
                        raw_text,
                        source=source,
                        detail=request_detail,
                    )
                content = await response.read()
                mime = normalize_content_type(
                    response.headers.get("Content-Type", "")
                )
                status = response.status
    except asyncio.TimeoutError as exc:
        raise NetworkError(
            f"{source} request timed out.",
            code=ZImageErrorCode.TIMEOUT,
            detail={**request_detail, "elapsed_ms": _elapsed_ms(started_at)},
        ) from exc
    except aiohttp.ClientError as exc:
        raise NetworkError(
            f"{source} request failed.",
            detail={
                **request_detail,
                "elapsed_ms": _elapsed_ms(started_at),
                "client_error": str(exc),
                "client_error_type": type(exc).__name__,
            },
        ) from exc

    elapsed_ms = _elapsed_ms(started_at)
    structured_log.debug(
        "http.response",
        {
            "elapsed_ms": elapsed_ms,
            "status_code": status,
            "mime": mime,
            "size": len(content),
        },
    )
    return {"data": content, "mime": mime, "elapsed_ms": elapsed_ms}
