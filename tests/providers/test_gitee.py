from __future__ import annotations

from typing import Any

import pytest

from zimage.providers.gitee import GiteeAdapter
from zimage.providers.keys import KeyRotator
from zimage.providers.schema import GenerationRequest, Pricing, SystemConfig
from zimage.utils.errors import ConfigurationError, ProviderError
from zimage.utils.http import _raise_for_status


class _FakePostJson:
    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self.data = data if data is not None else {
            "data": [{"b64_json": "QUJD", "type": "image/png"}],
            "created": 1,
        }
        self.calls: list[dict[str, Any]] = []

    async def __call__(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(kwargs)
        return {"data": self.data, "elapsed_ms": 12}


def _make_adapter(environ: dict[str, str] | None = None) -> GiteeAdapter:
    return GiteeAdapter(key_rotator=KeyRotator(), environ=environ or {})


@pytest.fixture
def fake_post(monkeypatch: pytest.MonkeyPatch) -> _FakePostJson:
    fake = _FakePostJson()
    monkeypatch.setattr("zimage.providers.gitee.post_json", fake)
    return fake


@pytest.mark.asyncio
async def test_gitee_generate_success(fake_post: _FakePostJson) -> None:
    """验证：成功响应被归一化为 data URL，默认模型与默认价格生效。"""
    adapter = _make_adapter()

    result = await adapter.generate(
        GenerationRequest(prompt="a cat", channel="gitee"),
        SystemConfig(gitee_api_key="key-1"),
    )

    assert result.type == "gitee-image"
    assert result.url == "data:image/png;base64,QUJD"
    assert result.cost == 30

    call = fake_post.calls[0]
    assert call["url"] == "https://ai.gitee.com/v1/images/generations"
    assert call["headers"]["Authorization"] == "Bearer key-1"
    assert call["payload"] == {"prompt": "a cat", "model": "z-image-turbo"}


@pytest.mark.asyncio
async def test_gitee_generate_payload_optional_fields(
    fake_post: _FakePostJson,
) -> None:
    """验证：size 与推理步数仅在提供时写入请求体，loras 不会发给 Gitee。"""
    adapter = _make_adapter()

    await adapter.generate(
        GenerationRequest(
            prompt="a dog",
            model="custom-model",
            size="1024x1024",
            num_inference_steps=9,
            loras={"some/lora": 0.8},
        ),
        SystemConfig(gitee_api_key="key-1", gitee_base_url="https://proxy.example.com"),
    )

    call = fake_post.calls[0]
    assert call["url"] == "https://proxy.example.com/v1/images/generations"
    assert call["payload"] == {
        "prompt": "a dog",
        "model": "custom-model",
        "size": "1024x1024",
        "num_inference_steps": 9,
    }


@pytest.mark.asyncio
async def test_gitee_generate_uses_configured_price(fake_post: _FakePostJson) -> None:
    """验证：配置了 giteeImage 价格时使用配置值。"""
    adapter = _make_adapter()

    result = await adapter.generate(
        GenerationRequest(prompt="a cat"),
        SystemConfig(gitee_api_key="key-1", pricing=Pricing(gitee_image=8)),
    )

    assert result.cost == 8


@pytest.mark.asyncio
async def test_gitee_generate_defaults_mime_when_type_missing(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """验证：响应未声明 type 时按 image/png 组装。"""
    fake = _FakePostJson({"data": [{"b64_json": "QUJD"}]})
    monkeypatch.setattr("zimage.providers.gitee.post_json", fake)

    result = await _make_adapter().generate(
        GenerationRequest(prompt="a cat"), SystemConfig(gitee_api_key="k")
    )

    assert result.url == "data:image/png;base64,QUJD"


@pytest.mark.asyncio
async def test_gitee_generate_rotates_keys(fake_post: _FakePostJson) -> None:
    """验证：多次调用按顺序轮换密钥。"""
    adapter = _make_adapter()
    config = SystemConfig(gitee_api_key="k1, k2")

    for _ in range(3):
        await adapter.generate(GenerationRequest(prompt="a cat"), config)

    assert [call["headers"]["Authorization"] for call in fake_post.calls] == [
        "Bearer k1",
        "Bearer k2",
        "Bearer k1",
    ]


@pytest.mark.asyncio
async def test_gitee_generate_env_fallback(fake_post: _FakePostJson) -> None:
    """验证：未配置密钥与地址时回退到环境变量。"""
    adapter = _make_adapter(
        {"GITEE_API_KEY": "env-key", "GITEE_BASE_URL": "https://env.example.com/"}
    )

    await adapter.generate(GenerationRequest(prompt="a cat"), SystemConfig())

    call = fake_post.calls[0]
    assert call["headers"]["Authorization"] == "Bearer env-key"
    assert call["url"] == "https://env.example.com/v1/images/generations"


@pytest.mark.asyncio
async def test_gitee_generate_missing_key_raises(fake_post: _FakePostJson) -> None:
    """验证：配置与环境变量都没有密钥时抛出 ConfigurationError，且不发请求。"""
    with pytest.raises(ConfigurationError):
        await _make_adapter().generate(
            GenerationRequest(prompt="a cat"), SystemConfig()
        )

    assert fake_post.calls == []


@pytest.mark.parametrize(
    "data",
    [
        {"data": []},
        {"data": [{"type": "image/png"}]},
        {"data": [{"b64_json": ""}]},
        {"created": 1},
    ],
)
@pytest.mark.asyncio
async def test_gitee_generate_without_image_data_raises(
    monkeypatch: pytest.MonkeyPatch,
    data: dict[str, Any],
) -> None:
    """验证：成功响应中缺少图片数据时抛出 ProviderError。"""
    monkeypatch.setattr("zimage.providers.gitee.post_json", _FakePostJson(data))

    with pytest.raises(ProviderError, match="no image data"):
        await _make_adapter().generate(
            GenerationRequest(prompt="a cat"), SystemConfig(gitee_api_key="k")
        )


@pytest.mark.asyncio
async def test_gitee_generate_http_error_propagates(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """验证：非 2xx 响应的错误信息与状态码原样透传。"""

    async def failing_post_json(*, source: str, **_: Any) -> dict[str, Any]:
        _raise_for_status(
            401, '{"error": {"message": "bad key"}}', source=source, detail={}
        )
        raise AssertionError("unreachable")

    monkeypatch.setattr("zimage.providers.gitee.post_json", failing_post_json)

    with pytest.raises(ProviderError) as exc_info:
        await _make_adapter().generate(
            GenerationRequest(prompt="a cat"), SystemConfig(gitee_api_key="k")
        )

    assert "bad key" in exc_info.value.message
    assert "401" in exc_info.value.message
    assert exc_info.value.status_code == 401
    assert exc_info.value.provider_message == "bad key"
    assert exc_info.value.retryable is False
