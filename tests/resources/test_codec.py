from __future__ import annotations

import pytest

from zimage.resources.codec import (
    decode_inline_image,
    parse_data_url_header,
    transfer_base64_to_data_url,
    transfer_bytes_to_data_url,
)


def test_transfer_base64_to_data_url() -> None:
    """验证：mime 与 base64 组装为 data URL。"""
    assert transfer_base64_to_data_url("image/png", "QUJD") == "data:image/png;base64,QUJD"


def test_transfer_base64_to_data_url_requires_mime() -> None:
    """验证：mime 为空时抛出 ValueError。"""
    with pytest.raises(ValueError, match="mime is required"):
        transfer_base64_to_data_url("  ", "QUJD")


def test_transfer_bytes_to_data_url() -> None:
    """验证：二进制内容会先编码为 base64。"""
    assert transfer_bytes_to_data_url("image/jpeg", b"ABC") == "data:image/jpeg;base64,QUJD"


def test_parse_data_url_header() -> None:
    """验证：解析 data URL 头部的 MIME 与 base64 标记。"""
    header = parse_data_url_header("data:image/PNG;base64,QUJD")

    assert header.mime == "image/png"
    assert header.is_base64 is True
    assert header.payload == "QUJD"


@pytest.mark.parametrize(
    "value",
    ["QUJD", "base64://QUJD", "data:image/png;base64,QUJD", " QU JD \n"],
)
def test_decode_inline_image(value: str) -> None:
    """验证：data URL、base64:// 前缀与裸 base64 都可解码。"""
    assert decode_inline_image(value) == b"ABC"


def test_decode_inline_image_invalid_raises() -> None:
    """验证：非法 base64 内容抛出 ValueError。"""
    with pytest.raises(ValueError, match="base64 payload is invalid"):
        decode_inline_image("@@@")
