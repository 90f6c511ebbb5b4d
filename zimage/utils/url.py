from __future__ import annotations


def is_http_url(value: str) -> bool:
    """判断是否为 http(s) URL。"""
    return value.startswith("http://") or value.startswith("https://")


def normalize_base_url(value: str) -> str:
    """去掉末尾斜杠后统一补一个，便于直接拼接 `v1/...` 路径。"""
    return value.strip().rstrip("/") + "/"
