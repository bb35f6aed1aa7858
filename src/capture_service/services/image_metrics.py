"""
Image quality metrics over raw RGB pixel buffers.

All functions are pure and take an array of shape (height, width, 3) with
channel values in 0-255. No resizing, rotation or color-space conversion is
applied; callers supply upright, decoded images of a consistent resolution
(the blur score is not normalized by image size).
"""

import numpy as np

# ITU-R BT.601 luma weights
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])

# A pixel counts as glare when all three channels exceed this value.
GLARE_CHANNEL_THRESHOLD = 250


def as_pixel_array(pixels) -> np.ndarray:
    """
    Validate and return a pixel buffer as a numpy array.

    Raises:
        ValueError: if the buffer is not (height, width, 3)
    """
    array = np.asarray(pixels)
    if array.ndim != 3 or array.shape[2] != 3:
        raise ValueError(f"Expected an RGB buffer of shape (height, width, 3), got {array.shape}")
    return array


def to_grayscale(pixels) -> np.ndarray:
    """Luminance per pixel (0-255 range, float)."""
    array = as_pixel_array(pixels).astype(np.float64)
    return array @ LUMA_WEIGHTS


def laplacian_response(gray: np.ndarray) -> np.ndarray:
    """
    Convolve a grayscale image with the 3x3 Laplacian kernel
    [[0, 1, 0], [1, -4, 1], [0, 1, 0]].

    Only interior pixels are computed; the one-pixel border stays 0.
    """
    response = np.zeros_like(gray, dtype=np.float64)
    if gray.shape[0] < 3 or gray.shape[1] < 3:
        return response

    response[1:-1, 1:-1] = (
        gray[:-2, 1:-1]
        + gray[2:, 1:-1]
        + gray[1:-1, :-2]
        + gray[1:-1, 2:]
        - 4.0 * gray[1:-1, 1:-1]
    )
    return response


def calculate_blur_score(pixels) -> float:
    """
    Blur score as the variance of the Laplacian response.

    Higher is sharper. The variance is taken over the whole response map,
    border cells included.
    """
    response = laplacian_response(to_grayscale(pixels))
    if response.size == 0:
        return 0.0
    return float(np.var(response))


def calculate_brightness(pixels) -> float:
    """Mean perceived brightness (0.0-1.0)."""
    gray = to_grayscale(pixels)
    if gray.size == 0:
        return 0.0
    return float(gray.mean() / 255.0)


def calculate_glare_percentage(pixels) -> float:
    """Fraction of near-white pixels (0.0-1.0)."""
    array = as_pixel_array(pixels)
    if array.shape[0] == 0 or array.shape[1] == 0:
        return 0.0
    overexposed = np.all(array > GLARE_CHANNEL_THRESHOLD, axis=2)
    return float(overexposed.mean())
