"""Image preparation for the vision request: decode, bound size, re-encode as JPEG."""
import base64
import logging
import os
from typing import NamedTuple

import cv2
import numpy as np

logger = logging.getLogger("roster_extraction.images")

VISION_MAX_DIMENSION = max(1024, int(os.environ.get("VISION_MAX_DIMENSION", "2400")))
VISION_JPEG_QUALITY = min(95, max(50, int(os.environ.get("VISION_JPEG_QUALITY", "90"))))

SUPPORTED_MEDIA_TYPES = {"image/png", "image/jpeg", "image/jpg", "image/webp"}


class PreparedImage(NamedTuple):
    label: str
    media_type: str
    base64_data: str

    @property
    def data_url(self) -> str:
        return f"data:{self.media_type};base64,{self.base64_data}"


def decode_image_bytes(image_bytes: bytes) -> np.ndarray:
    file_bytes = np.frombuffer(image_bytes, np.uint8)
    image = cv2.imdecode(file_bytes, cv2.IMREAD_COLOR)
    if image is None:
        raise ValueError("Could not decode image")
    return image


def encode_image_to_base64(image_array: np.ndarray) -> str:
    """Convert an OpenCV image array to base64 JPEG with bounded size for stable API latency."""
    prepared = image_array
    height, width = prepared.shape[:2]
    max_side = max(width, height)
    if max_side > VISION_MAX_DIMENSION:
        scale = VISION_MAX_DIMENSION / float(max_side)
        target_width = max(1, int(round(width * scale)))
        target_height = max(1, int(round(height * scale)))
        prepared = cv2.resize(prepared, (target_width, target_height), interpolation=cv2.INTER_AREA)
        logger.debug(
            "Downscaled roster image from %sx%s to %sx%s",
            width,
            height,
            target_width,
            target_height,
        )

    success, buffer = cv2.imencode(
        '.jpg',
        prepared,
        [int(cv2.IMWRITE_JPEG_QUALITY), VISION_JPEG_QUALITY],
    )
    if not success:
        raise ValueError("Could not encode image for vision request")
    return base64.b64encode(buffer).decode('utf-8')


def prepare_image(image_bytes: bytes, label: str) -> PreparedImage:
    """
    Decode and re-encode an uploaded roster photo.

    Raises:
        ValueError: if the bytes are not a decodable image
    """
    image = decode_image_bytes(image_bytes)
    return PreparedImage(label=label, media_type="image/jpeg", base64_data=encode_image_to_base64(image))
