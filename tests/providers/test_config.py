from __future__ import annotations

import pytest

from zimage.providers.config import (
    read_system_config,
    resolve_base_url,
    resolve_price,
    resolve_setting,
)
from zimage.providers.schema import Pricing, SystemConfig
from zimage.utils.errors import ConfigurationError


def test_read_system_config_from_mapping() -> None:
    """验证：camelCase 映射可转换为 SystemConfig，字符串会去空白。"""
    config = read_system_config(
        {
            "giteeApiKey": " k1,k2 ",
            "giteeBaseUrl": "https://gitee.example.com",
            "zimageApiKey": "ms-key",
            "zimageBaseUrl": "",
            "picuiApiKey": "picui",
            "pricing": {"giteeImage": 12, "zimageImage": "18"},
            "unrelated": "ignored",
        }
    )

    assert config == SystemConfig(
        gitee_api_key="k1,k2",
        gitee_base_url="https://gitee.example.com",
        zimage_api_key="ms-key",
        zimage_base_url="",
        picui_api_key="picui",
        pricing=Pricing(gitee_image=12, zimage_image=18),
    )


def test_read_system_config_all_fields_optional() -> None:
    """验证：空映射与 None 都得到全缺省配置。"""
    assert read_system_config({}) == SystemConfig()
    assert read_system_config(None) == SystemConfig()


def test_read_system_config_passthrough_instance() -> None:
    """验证：已是 SystemConfig 时原样返回。"""
    config = SystemConfig(gitee_api_key="k")

    assert read_system_config(config) is config


@pytest.mark.parametrize(
    "raw_config",
    [
        ["not", "a", "mapping"],
        {"giteeApiKey": 123},
        {"pricing": "30"},
        {"pricing": {"giteeImage": "cheap"}},
        {"pricing": {"zimageImage": True}},
    ],
)
def test_read_system_config_invalid_raises(raw_config: object) -> None:
    """验证：结构或类型不合法时抛出 ConfigurationError。"""
    with pytest.raises(ConfigurationError):
        read_system_config(raw_config)


def test_resolve_setting_prefers_config_then_env_then_default() -> None:
    """验证：配置值优先，其次环境变量，最后默认值。"""
    environ = {"GITEE_API_KEY": " env-key "}

    assert resolve_setting("cfg-key", "GITEE_API_KEY", environ) == "cfg-key"
    assert resolve_setting("", "GITEE_API_KEY", environ) == "env-key"
    assert resolve_setting("", "GITEE_API_KEY", {}, "fallback") == "fallback"


@pytest.mark.parametrize(
    ("configured", "expected"),
    [
        ("https://a.example.com", "https://a.example.com/"),
        ("https://a.example.com/", "https://a.example.com/"),
        ("https://a.example.com///", "https://a.example.com/"),
        ("", "https://default.example.com/"),
    ],
)
def test_resolve_base_url_normalizes_trailing_slash(
    configured: str, expected: str
) -> None:
    """验证：基础地址统一为单个结尾斜杠。"""
    assert (
        resolve_base_url(configured, "UNUSED_ENV", "https://default.example.com", {})
        == expected
    )


@pytest.mark.parametrize(
    ("configured", "expected"), [(None, 30), (0, 30), (45, 45)]
)
def test_resolve_price(configured: int | None, expected: int) -> None:
    """验证：未配置或为 0 时回退默认价格。"""
    assert resolve_price(configured, 30) == expected
