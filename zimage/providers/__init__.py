from .base import ProviderAdapter
from .config import read_system_config
from .factory import build_provider_adapters, resolve_channel
from .gitee import GiteeAdapter
from .keys import KeyRotator
from .modelscope import ModelScopeAdapter

__all__ = [
    "GiteeAdapter",
    "KeyRotator",
    "ModelScopeAdapter",
    "ProviderAdapter",
    "build_provider_adapters",
    "read_system_config",
    "resolve_channel",
]
