from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from ..utils.dicts import first_list_item, get_dict_value

Channel = Literal["gitee", "modelscope"]
ResultType = Literal["gitee-image", "zimage-image"]

DEFAULT_CHANNEL: Channel = "modelscope"


@dataclass(slots=True, frozen=True)
class Pricing:
    gitee_image: int | None = None
    """Gitee 渠道单次生图价格"""
    zimage_image: int | None = None
    """ModelScope 渠道单次生图价格"""


@dataclass(slots=True, frozen=True)
class SystemConfig:
    gitee_api_key: str = ""
    """Gitee API 密钥，多个以逗号分隔"""
    gitee_base_url: str = ""
    """Gitee API 基础地址"""
    zimage_api_key: str = ""
    """ModelScope API 密钥，多个以逗号分隔"""
    zimage_base_url: str = ""
    """ModelScope API 基础地址"""
    picui_api_key: str = ""
    """参考图图床密钥"""
    pricing: Pricing = field(default_factory=Pricing)


@dataclass(slots=True, frozen=True)
class ReferenceImage:
    data: str
    """http(s) URL，或内联图片（data URL / base64）。"""


@dataclass(slots=True, frozen=True)
class GenerationRequest:
    prompt: str
    """生图提示词"""
    model: str | None = None
    """模型 ID，留空使用渠道默认模型"""
    channel: str | None = DEFAULT_CHANNEL
    """渠道：gitee | modelscope，其他值均按 modelscope 处理"""
    size: str | None = None
    """目标尺寸，例如 1024x1024"""
    num_inference_steps: int | None = None
    """推理步数，仅 Gitee 使用"""
    loras: Any = None
    """LoRA 配置，仅 ModelScope 使用"""
    images: tuple[ReferenceImage, ...] = ()
    """有序参考图列表"""

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> GenerationRequest:
        """从 camelCase 线上结构构造请求，`images` 项可为 `{data}` 或字符串。"""
        images: list[ReferenceImage] = []
        for item in raw.get("images") or ():
            if isinstance(item, ReferenceImage):
                images.append(item)
            elif isinstance(item, str):
                images.append(ReferenceImage(data=item))
            elif isinstance(item, Mapping):
                images.append(ReferenceImage(data=str(item.get("data") or "")))
            else:
                raise TypeError(f"Unsupported reference image entry: {item!r}")

        return cls(
            prompt=str(raw.get("prompt") or ""),
            model=raw.get("model") or None,
            channel=raw.get("channel") or DEFAULT_CHANNEL,
            size=raw.get("size") or None,
            num_inference_steps=raw.get(
                "numInferenceSteps", raw.get("num_inference_steps")
            ),
            loras=raw.get("loras"),
            images=tuple(images),
        )


@dataclass(slots=True, frozen=True)
class GenerateResult:
    type: ResultType
    """产出渠道标识"""
    url: str
    """`data:<mime>;base64,<payload>` 形式的图片"""
    cost: int
    """本次生成的费用"""

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "url": self.url, "cost": self.cost}


# 以下为各渠道/模式的响应变体，`parse` 只做结构校验，缺字段时返回 None，
# 由调用方决定抛出何种错误。


@dataclass(slots=True, frozen=True)
class GiteeImageResponse:
    b64_json: str
    mime: str

    @classmethod
    def parse(cls, data: dict[str, Any]) -> GiteeImageResponse | None:
        item = first_list_item(data, "data")
        b64_json = get_dict_value(item, "b64_json")
        if not isinstance(b64_json, str) or not b64_json.strip():
            return None
        mime = get_dict_value(item, "type")
        return cls(
            b64_json=b64_json,
            mime=mime if isinstance(mime, str) and mime.strip() else "image/png",
        )


@dataclass(slots=True, frozen=True)
class ModelScopeImageResponse:
    url: str
    request_id: str = ""

    @classmethod
    def parse(cls, data: dict[str, Any]) -> ModelScopeImageResponse | None:
        url = get_dict_value(first_list_item(data, "images"), "url")
        if not isinstance(url, str) or not url:
            return None
        request_id = data.get("request_id")
        return cls(url=url, request_id=request_id if isinstance(request_id, str) else "")


@dataclass(slots=True, frozen=True)
class ModelScopeAsyncResponse:
    task_id: str

    @classmethod
    def parse(cls, data: dict[str, Any]) -> ModelScopeAsyncResponse | None:
        task_id = data.get("task_id")
        if task_id is None or task_id == "":
            return None
        return cls(task_id=str(task_id))


@dataclass(slots=True, frozen=True)
class ModelScopeTaskResponse:
    task_status: str
    output_images: tuple[str, ...] = ()
    message: str = ""

    @classmethod
    def parse(cls, data: dict[str, Any]) -> ModelScopeTaskResponse:
        """任务状态响应总能解析；未知或缺失的状态交给轮询状态机处理。"""
        status = data.get("task_status")
        raw_images = data.get("output_images")
        images = (
            tuple(item for item in raw_images if isinstance(item, str) and item)
            if isinstance(raw_images, list)
            else ()
        )
        message = data.get("message")
        return cls(
            task_status=status if isinstance(status, str) else "",
            output_images=images,
            message=message if isinstance(message, str) else "",
        )
