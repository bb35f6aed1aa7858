"""
Pytest configuration for capture service tests.

Provides fixtures for:
- ICAO 9303 specimen MRZ text (TD1, TD2, TD3)
- Synthetic RGB pixel buffers with known quality characteristics
- Base64 encoded images for API tests

Specimen MRZ data from ICAO Doc 9303 (Utopia, Anna Maria Eriksson).
"""

import base64
import io
import sys
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

ROOT_DIR = Path(__file__).parent
SRC_DIR = ROOT_DIR / "src"
if SRC_DIR.exists():
    sys.path.insert(0, str(SRC_DIR))


def make_checkerboard(size: int = 100, low: int = 60, high: int = 200) -> np.ndarray:
    """Pixel-level checkerboard: very sharp, mid brightness, no glare."""
    ys, xs = np.indices((size, size))
    values = np.where((xs + ys) % 2 == 0, low, high).astype(np.uint8)
    return np.stack([values] * 3, axis=2)


def make_uniform(value: int, size: int = 100) -> np.ndarray:
    return np.full((size, size, 3), value, dtype=np.uint8)


def encode_png_base64(pixels: np.ndarray) -> str:
    buffer = io.BytesIO()
    Image.fromarray(pixels).save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode()


# =============================================================================
# MRZ Text Fixtures
# =============================================================================


@pytest.fixture
def td3_mrz_text():
    """
    ICAO specimen passport MRZ as far as the optional data field (86 chars).

    The two trailing check digits are not read by the parser; a full 88-char
    passport MRZ falls in the TD1 length range.
    """
    return "P<UTOERIKSSON<<ANNA<MARIA<<<<<<<<<<<<<<<<<<<\nL898902C36UTO7408122F1204159ZE184226B<<<<<"


@pytest.fixture
def td3_mrz_text_full():
    """Complete ICAO specimen passport MRZ (2 lines x 44 chars)."""
    return (
        "P<UTOERIKSSON<<ANNA<MARIA<<<<<<<<<<<<<<<<<<<\nL898902C36UTO7408122F1204159ZE184226B<<<<<10"
    )


@pytest.fixture
def td1_mrz_text():
    """ICAO specimen ID card MRZ (3 lines x 30 chars)."""
    return (
        "I<UTOD231458907<<<<<<<<<<<<<<<\n"
        "7408122F1204159UTO<<<<<<<<<<<6\n"
        "ERIKSSON<<ANNA<MARIA<<<<<<<<<<"
    )


@pytest.fixture
def td2_mrz_text():
    """ICAO specimen TD2 MRZ (2 lines x 36 chars)."""
    return "I<UTOERIKSSON<<ANNA<MARIA<<<<<<<<<<<\nD231458907UTO7408122F1204159<<<<<<<6"


@pytest.fixture
def td3_mrz_text_bad_document_check():
    """Passport MRZ with a wrong document number check digit (0 instead of 6)."""
    return "P<UTOERIKSSON<<ANNA<MARIA<<<<<<<<<<<<<<<<<<<\nL898902C30UTO7408122F1204159ZE184226B<<<<<"


@pytest.fixture
def ocr_text_with_noise(td3_mrz_text):
    """MRZ surrounded by the printed text of a passport data page."""
    return "\n".join(
        [
            "PASSPORT",
            "Utopia",
            "Surname / Nom",
            "ERIKSSON",
            td3_mrz_text,
            "Page 2",
        ]
    )


# =============================================================================
# Pixel Buffer Fixtures
# =============================================================================


@pytest.fixture
def sharp_image():
    """100x100 sharp mid-brightness image."""
    return make_checkerboard()


@pytest.fixture
def flat_gray_image():
    """100x100 uniform gray (blur score 0)."""
    return make_uniform(128)


@pytest.fixture
def dark_image():
    return make_uniform(10)


@pytest.fixture
def white_image():
    """Fully saturated image: too bright and 100% glare."""
    return make_uniform(255)


@pytest.fixture
def sharp_image_base64(sharp_image):
    return encode_png_base64(sharp_image)


@pytest.fixture
def dark_image_base64(dark_image):
    return encode_png_base64(dark_image)


@pytest.fixture
def invalid_base64():
    """Invalid base64 string for error testing."""
    return "not-valid-base64-data!!@@##"


@pytest.fixture
def non_image_base64():
    """Valid base64 that does not decode to an image."""
    return base64.b64encode(b"this is not an image").decode()
