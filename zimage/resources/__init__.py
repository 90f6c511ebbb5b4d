from .codec import (
    decode_inline_image,
    transfer_base64_to_data_url,
    transfer_bytes_to_data_url,
)
from .mime import sniff_image_extension, sniff_inline_image_extension

__all__ = [
    "decode_inline_image",
    "sniff_image_extension",
    "sniff_inline_image_extension",
    "transfer_base64_to_data_url",
    "transfer_bytes_to_data_url",
]
