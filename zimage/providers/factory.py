from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from ..utils.http import DEFAULT_TIMEOUT_SEC
from .base import ProviderAdapter
from .gitee import GiteeAdapter
from .keys import KeyRotator
from .modelscope import ModelScopeAdapter
from .polling import ModelScopeTaskPoller
from .references import ReferenceResolver
from .schema import Channel


@dataclass(slots=True)
class AdapterDependencies:
    """各适配器共享的依赖；key_rotator 在同一个调度器内只存在一份。"""

    key_rotator: KeyRotator = field(default_factory=KeyRotator)
    reference_resolver: ReferenceResolver = field(default_factory=ReferenceResolver)
    poller: ModelScopeTaskPoller = field(default_factory=ModelScopeTaskPoller)
    timeout_sec: int = DEFAULT_TIMEOUT_SEC
    environ: Mapping[str, str] | None = None


AdapterBuilder = Callable[[AdapterDependencies], ProviderAdapter]


def _build_gitee(deps: AdapterDependencies) -> ProviderAdapter:
    return GiteeAdapter(
        key_rotator=deps.key_rotator,
        timeout_sec=deps.timeout_sec,
        environ=deps.environ,
    )


def _build_modelscope(deps: AdapterDependencies) -> ProviderAdapter:
    return ModelScopeAdapter(
        key_rotator=deps.key_rotator,
        reference_resolver=deps.reference_resolver,
        poller=deps.poller,
        timeout_sec=deps.timeout_sec,
        environ=deps.environ,
    )


_ADAPTER_BUILDERS: dict[Channel, AdapterBuilder] = {
    "gitee": _build_gitee,
    "modelscope": _build_modelscope,
}


def resolve_channel(channel: str | None) -> Channel:
    """只有 gitee 走 Gitee，其余（含缺省）一律走 ModelScope。"""
    if channel == "gitee":
        return "gitee"
    return "modelscope"


def build_provider_adapters(
    deps: AdapterDependencies,
) -> dict[Channel, ProviderAdapter]:
    return {channel: builder(deps) for channel, builder in _ADAPTER_BUILDERS.items()}
