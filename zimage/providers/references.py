from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Sequence

from ..resources import sniff_inline_image_extension
from ..utils.errors import ConfigurationError, UploadError
from ..utils.log import StructuredLogEmitter
from ..utils.url import is_http_url
from .schema import ReferenceImage, SystemConfig

structured_log = StructuredLogEmitter(logger=logging.getLogger(__name__))

# 图床上传函数签名：upload(data, filename) -> url | None
ImageUploader = Callable[[str, str], Awaitable[str | None]]


def _now_ms() -> int:
    return int(time.time() * 1000)


class ReferenceResolver:
    """把参考图描述转换为供应商可直接访问的 URL 列表。"""

    def __init__(
        self,
        *,
        uploader: ImageUploader | None = None,
        clock_ms: Callable[[], int] = _now_ms,
    ) -> None:
        self._uploader = uploader
        self._clock_ms = clock_ms

    async def resolve(
        self,
        images: Sequence[ReferenceImage],
        config: SystemConfig,
    ) -> list[str]:
        """按输入顺序逐个解析；空数据项直接跳过，不占位。"""
        urls: list[str] = []
        for index, image in enumerate(images):
            data = image.data or ""
            if not data:
                continue

            if is_http_url(data):
                urls.append(data)
                continue

            if not config.picui_api_key or self._uploader is None:
                raise ConfigurationError(
                    "Reference image hosting is not configured.",
                    detail={"index": index},
                )

            extension = sniff_inline_image_extension(data)
            filename = f"input_{self._clock_ms()}_{index}.{extension}"
            structured_log.debug(
                "references.upload",
                {"index": index, "filename": filename, "size": len(data)},
            )
            url = await self._uploader(data, filename)
            if not url:
                raise UploadError(
                    "Reference image upload failed, please retry later.",
                    detail={"index": index, "filename": filename},
                )
            urls.append(url)
        return urls
