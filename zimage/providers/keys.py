from __future__ import annotations

import threading

from ..utils.errors import ConfigurationError


def split_api_keys(raw_keys: str) -> list[str]:
    """按逗号拆分密钥串，去空白并过滤空项。"""
    return [key.strip() for key in raw_keys.split(",") if key.strip()]


class KeyRotator:
    """按供应商维护计数器，对同一组等价密钥做轮询选择。

    计数器随进程存活、只增不减，每次选择时对当前密钥数量取模，
    因此密钥列表变长或变短都不会越界。
    """

    def __init__(self) -> None:
        self._counters: dict[str, int] = {}
        self._lock = threading.Lock()

    def next_key(self, provider: str, raw_keys: str) -> str:
        keys = split_api_keys(raw_keys)
        if not keys:
            raise ConfigurationError(
                f"{provider} API key is not configured.",
                detail={"provider": provider},
            )
        with self._lock:
            counter = self._counters.get(provider, 0)
            self._counters[provider] = counter + 1
        return keys[counter % len(keys)]
