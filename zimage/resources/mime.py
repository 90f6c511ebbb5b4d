from __future__ import annotations

import filetype

from .codec import decode_inline_image


def sniff_image_extension(data: bytes, default_extension: str = "jpg") -> str:
    """按文件头嗅探图片扩展名（不带点），非图片或无法识别时回退默认值。"""
    guessed = filetype.guess(data)
    mime = getattr(guessed, "mime", "") or ""
    extension = getattr(guessed, "extension", "") or ""
    if not mime.startswith("image/") or not extension:
        return default_extension
    return extension


def sniff_inline_image_extension(value: str, default_extension: str = "jpg") -> str:
    """嗅探内联图片的扩展名；内容无法解码时同样回退默认值。"""
    try:
        data = decode_inline_image(value)
    except ValueError:
        return default_extension
    return sniff_image_extension(data, default_extension)
