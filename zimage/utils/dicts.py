from __future__ import annotations

from typing import Any


def get_dict_value(data: Any, *keys: str) -> Any:
    """安全读取嵌套字典字段，路径不存在时返回 None。"""
    current = data
    for key in keys:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
        if current is None:
            return None
    return current


def first_list_item(data: Any, *keys: str) -> Any:
    """读取嵌套路径上的列表首项，路径不存在或列表为空时返回 None。"""
    value = get_dict_value(data, *keys)
    if not isinstance(value, list) or not value:
        return None
    return value[0]
