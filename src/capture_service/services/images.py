"""Image payload decoding into RGB pixel buffers."""

import base64
import binascii
import io

import numpy as np
from PIL import Image, UnidentifiedImageError

from ..core.exceptions import InvalidImageError


def decode_base64_image(base64_string: str) -> np.ndarray:
    """
    Decode a base64 image string to an RGB numpy array.

    Args:
        base64_string: Base64 encoded image (with or without data URL prefix)

    Returns:
        array of shape (height, width, 3), dtype uint8

    Raises:
        InvalidImageError: if the payload is not valid base64 or not an image
    """
    # Remove data URL prefix if present
    if "," in base64_string:
        base64_string = base64_string.split(",", 1)[1]

    try:
        image_bytes = base64.b64decode(base64_string, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageError("payload is not valid base64") from e

    try:
        image = Image.open(io.BytesIO(image_bytes)).convert("RGB")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise InvalidImageError("payload is not a supported image") from e

    return np.array(image)
