from .dispatcher import ZImageDispatcher
from .providers.schema import (
    GenerateResult,
    GenerationRequest,
    Pricing,
    ReferenceImage,
    SystemConfig,
)
from .utils.errors import (
    ConfigurationError,
    NetworkError,
    ProviderError,
    TaskTimeoutError,
    UploadError,
    ValidationError,
    ZImageError,
    ZImageErrorCode,
)

__all__ = [
    "ConfigurationError",
    "GenerateResult",
    "GenerationRequest",
    "NetworkError",
    "Pricing",
    "ProviderError",
    "ReferenceImage",
    "SystemConfig",
    "TaskTimeoutError",
    "UploadError",
    "ValidationError",
    "ZImageDispatcher",
    "ZImageError",
    "ZImageErrorCode",
]
