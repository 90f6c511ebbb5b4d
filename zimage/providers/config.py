from __future__ import annotations

import os
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from ..utils.errors import ConfigurationError
from ..utils.url import normalize_base_url
from .schema import Pricing, SystemConfig

# 配置读取函数签名（由宿主注入，每次生成调用都会重新读取）：
# - config_loader() -> SystemConfig | camelCase 映射 | None
ConfigLoader = Callable[[], Awaitable[SystemConfig | Mapping[str, Any] | None]]

GITEE_API_KEY_ENV = "GITEE_API_KEY"
GITEE_BASE_URL_ENV = "GITEE_BASE_URL"
ZIMAGE_API_KEY_ENV = "ZIMAGE_API_KEY"
ZIMAGE_BASE_URL_ENV = "ZIMAGE_BASE_URL"

GITEE_DEFAULT_BASE_URL = "https://ai.gitee.com/"
MODELSCOPE_DEFAULT_BASE_URL = "https://api-inference.modelscope.cn/"

_STRING_FIELDS = {
    "giteeApiKey": "gitee_api_key",
    "giteeBaseUrl": "gitee_base_url",
    "zimageApiKey": "zimage_api_key",
    "zimageBaseUrl": "zimage_base_url",
    "picuiApiKey": "picui_api_key",
}


def _read_string(cfg: Mapping[str, Any], key: str) -> str:
    value = cfg.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigurationError(
            f"Config field '{key}' must be a string.",
            detail={"field": key, "type": type(value).__name__},
        )
    return value.strip()


def _read_price(pricing: Mapping[str, Any], key: str) -> int | None:
    value = pricing.get(key)
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ConfigurationError(
            f"Pricing field '{key}' must be an integer.",
            detail={"field": key, "value": value},
        )
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(
            f"Pricing field '{key}' must be an integer.",
            detail={"field": key, "value": value},
        ) from exc


def read_system_config(raw_config: Any) -> SystemConfig:
    """读取一次性的系统配置快照；所有字段均可缺省。"""
    if isinstance(raw_config, SystemConfig):
        return raw_config
    if raw_config is None:
        return SystemConfig()
    if not isinstance(raw_config, Mapping):
        raise ConfigurationError(
            "System config must be a mapping object.",
            detail={"type": type(raw_config).__name__},
        )

    values = {
        attr: _read_string(raw_config, key) for key, attr in _STRING_FIELDS.items()
    }
    raw_pricing = raw_config.get("pricing") or {}
    if not isinstance(raw_pricing, Mapping):
        raise ConfigurationError(
            "Config field 'pricing' must be a mapping object.",
            detail={"type": type(raw_pricing).__name__},
        )
    pricing = Pricing(
        gitee_image=_read_price(raw_pricing, "giteeImage"),
        zimage_image=_read_price(raw_pricing, "zimageImage"),
    )
    return SystemConfig(**values, pricing=pricing)


def resolve_setting(
    configured: str,
    env_name: str,
    environ: Mapping[str, str] | None = None,
    default: str = "",
) -> str:
    """配置值优先，其次环境变量，最后默认值。"""
    if configured:
        return configured
    env = os.environ if environ is None else environ
    return (env.get(env_name) or "").strip() or default


def resolve_base_url(
    configured: str,
    env_name: str,
    default: str,
    environ: Mapping[str, str] | None = None,
) -> str:
    return normalize_base_url(resolve_setting(configured, env_name, environ, default))


def resolve_price(configured: int | None, default: int) -> int:
    """未配置或配置为 0 时使用默认价格。"""
    return configured or default
