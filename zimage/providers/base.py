from __future__ import annotations

from abc import ABC, abstractmethod

from .schema import GenerateResult, GenerationRequest, ResultType, SystemConfig

DEFAULT_IMAGE_COST = 30


class ProviderAdapter(ABC):
    provider: str
    result_type: ResultType
    default_model: str

    @abstractmethod
    async def generate(
        self, request: GenerationRequest, config: SystemConfig
    ) -> GenerateResult: ...
