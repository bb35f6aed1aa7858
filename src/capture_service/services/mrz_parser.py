"""
Machine-readable zone (MRZ) extraction and parsing.

Supports the three ICAO 9303 layouts:
- TD1: ID cards, 3 lines x 30 characters
- TD2: some ID cards, 2 lines x 36 characters
- TD3: passports, 2 lines x 44 characters

The input is the raw text blob returned by an OCR engine. Noise lines are
discarded, the remaining candidate lines are concatenated, the format is
picked from the cleaned length and every field is read at its fixed offset.
Check digit failures are reported as validation errors on the result; they
never discard the other fields.

Uses:
- mrz: country code recognition (ICAO codes such as "UTO" or "D")
- iso3166: country display names
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

import iso3166
from mrz.base.countries_ops import get_country as mrz_get_country
from mrz.base.countries_ops import is_code

from .checksum import FILLER as FILLER_CHAR
from .checksum import MRZ_CHARACTERS, validate_check_digit

logger = logging.getLogger(__name__)

MIN_CANDIDATE_LINE_LENGTH = 20
NAME_SEPARATOR = "<<"

# Two-digit years up to this value belong to the 2000s.
CENTURY_PIVOT = 30

_NON_MRZ_CHARS = re.compile(r"[^A-Z0-9<]")
_MRZ_DATE = re.compile(r"[0-9]{6}")


class MrzFormat(str, Enum):
    """ICAO 9303 document format classes."""

    TD1 = "TD1"  # ID cards - 3 lines x 30 chars
    TD2 = "TD2"  # Some IDs - 2 lines x 36 chars
    TD3 = "TD3"  # Passports - 2 lines x 44 chars


# Accepted cleaned-text lengths per format, checked in this order.
# TD1 and TD3 share 88-90, where TD1 wins.
FORMAT_LENGTH_RANGES = (
    (MrzFormat.TD1, range(88, 93)),
    (MrzFormat.TD2, range(70, 75)),
    (MrzFormat.TD3, range(86, 91)),
)


@dataclass(frozen=True)
class MrzData:
    """Fields read from a single MRZ parse attempt."""

    format: MrzFormat
    document_type: str
    issuing_country: str
    last_name: str
    first_name: str
    document_number: str
    nationality: str
    date_of_birth: str  # YYMMDD
    sex: str
    expiration_date: str  # YYMMDD
    optional_data_1: str | None = None
    optional_data_2: str | None = None
    validation_errors: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_valid(self) -> bool:
        return not self.validation_errors


@dataclass(frozen=True)
class _Layout:
    """Character offsets of every field for one MRZ format."""

    min_length: int
    document_type: slice
    issuing_country: slice
    document_number: slice
    document_number_check: int
    date_of_birth: slice
    date_of_birth_check: int
    sex: int
    expiration_date: slice
    expiration_date_check: int
    nationality: slice
    name: slice
    optional_data_1: slice
    optional_data_2: slice | None = None


_LAYOUTS = {
    MrzFormat.TD1: _Layout(
        min_length=90,
        document_type=slice(0, 2),
        issuing_country=slice(2, 5),
        document_number=slice(5, 14),
        document_number_check=14,
        optional_data_1=slice(15, 30),
        date_of_birth=slice(30, 36),
        date_of_birth_check=36,
        sex=37,
        expiration_date=slice(38, 44),
        expiration_date_check=44,
        nationality=slice(45, 48),
        optional_data_2=slice(48, 59),
        name=slice(60, 90),
    ),
    MrzFormat.TD2: _Layout(
        min_length=71,
        document_type=slice(0, 2),
        issuing_country=slice(2, 5),
        name=slice(5, 36),
        document_number=slice(36, 45),
        document_number_check=45,
        nationality=slice(46, 49),
        date_of_birth=slice(49, 55),
        date_of_birth_check=55,
        sex=56,
        expiration_date=slice(57, 63),
        expiration_date_check=63,
        optional_data_1=slice(64, 71),
    ),
    MrzFormat.TD3: _Layout(
        min_length=86,
        document_type=slice(0, 2),
        issuing_country=slice(2, 5),
        name=slice(5, 44),
        document_number=slice(44, 53),
        document_number_check=53,
        nationality=slice(54, 57),
        date_of_birth=slice(57, 63),
        date_of_birth_check=63,
        sex=64,
        expiration_date=slice(65, 71),
        expiration_date_check=71,
        optional_data_1=slice(72, 86),
    ),
}


# =============================================================================
# Text Extraction
# =============================================================================


def _looks_like_mrz(line: str) -> bool:
    return all(char in MRZ_CHARACTERS for char in line)


def _normalize_line(line: str) -> str:
    return _NON_MRZ_CHARS.sub("", line.upper().replace(" ", ""))


def extract_mrz_text(text: str) -> str:
    """
    Pick the MRZ candidate lines out of raw OCR text.

    Keeps normalized lines of at least 20 characters that either contain a
    filler or consist only of MRZ characters, and concatenates them.
    """
    candidates = []
    for raw_line in text.splitlines():
        line = _normalize_line(raw_line)
        if len(line) < MIN_CANDIDATE_LINE_LENGTH:
            continue
        if FILLER_CHAR in line or _looks_like_mrz(line):
            candidates.append(line)
    return "".join(candidates)


def clean_mrz_text(text: str) -> str:
    """
    Apply the MRZ OCR correction and drop non-MRZ characters.

    Letter O is always read as digit 0; this is the one OCR confusion
    corrected at this stage.
    """
    return _NON_MRZ_CHARS.sub("", text.upper().replace("O", "0"))


def detect_format(cleaned: str) -> MrzFormat | None:
    """
    Detect the MRZ format from the cleaned text length.

    The first matching range wins, so lengths 88-90 are classified as TD1
    and only 86-87 reach TD3. No content-based disambiguation is done.
    """
    length = len(cleaned)
    for mrz_format, lengths in FORMAT_LENGTH_RANGES:
        if length in lengths:
            return mrz_format
    return None


# =============================================================================
# Field Parsing
# =============================================================================


def parse_name(name_field: str) -> tuple[str, str]:
    """
    Split an MRZ name field into (last_name, first_name).

    The surname and given names are separated by "<<"; single fillers
    inside either part become spaces. Missing parts are empty strings.
    """
    parts = name_field.split(NAME_SEPARATOR)
    last_name = parts[0].replace(FILLER_CHAR, " ").strip()
    first_name = parts[1].replace(FILLER_CHAR, " ").strip() if len(parts) > 1 else ""
    return last_name, first_name


def _optional(value: str) -> str | None:
    stripped = value.replace(FILLER_CHAR, "")
    return stripped or None


def _parse_layout(text: str, mrz_format: MrzFormat) -> MrzData | None:
    layout = _LAYOUTS[mrz_format]
    if len(text) < layout.min_length:
        logger.debug("MRZ text too short for %s (%d chars)", mrz_format.value, len(text))
        return None

    document_number_raw = text[layout.document_number]
    date_of_birth = text[layout.date_of_birth]
    expiration_date = text[layout.expiration_date]

    validation_errors = []
    if not validate_check_digit(document_number_raw, text[layout.document_number_check]):
        validation_errors.append("Invalid document number check digit")
    if not validate_check_digit(date_of_birth, text[layout.date_of_birth_check]):
        validation_errors.append("Invalid date of birth check digit")
    if not validate_check_digit(expiration_date, text[layout.expiration_date_check]):
        validation_errors.append("Invalid expiration date check digit")

    last_name, first_name = parse_name(text[layout.name])
    optional_data_2 = None
    if layout.optional_data_2 is not None:
        optional_data_2 = _optional(text[layout.optional_data_2])

    return MrzData(
        format=mrz_format,
        document_type=text[layout.document_type].replace(FILLER_CHAR, ""),
        issuing_country=text[layout.issuing_country],
        last_name=last_name,
        first_name=first_name,
        document_number=document_number_raw.replace(FILLER_CHAR, ""),
        nationality=text[layout.nationality],
        date_of_birth=date_of_birth,
        sex=text[layout.sex],
        expiration_date=expiration_date,
        optional_data_1=_optional(text[layout.optional_data_1]),
        optional_data_2=optional_data_2,
        validation_errors=tuple(validation_errors),
    )


def parse_mrz(text: str) -> MrzData | None:
    """
    Parse raw OCR text into MRZ data.

    Returns None when no MRZ of a known length is found. Never raises for
    malformed input; checksum failures are listed in validation_errors.
    """
    if not text:
        return None

    cleaned = clean_mrz_text(extract_mrz_text(text))
    mrz_format = detect_format(cleaned)
    if mrz_format is None:
        logger.debug("No MRZ found (%d candidate chars)", len(cleaned))
        return None

    data = _parse_layout(cleaned, mrz_format)
    if data is not None and not data.is_valid:
        logger.info(
            "MRZ %s parsed with %d checksum error(s)",
            mrz_format.value,
            len(data.validation_errors),
        )
    return data


# =============================================================================
# Dates and Countries
# =============================================================================


def format_date(yymmdd: str) -> str | None:
    """
    Convert an MRZ date (YYMMDD) to YYYY-MM-DD.

    Years up to 30 are placed in the 2000s, later ones in the 1900s.
    Returns None unless the input is exactly six digits.
    """
    if not _MRZ_DATE.fullmatch(yymmdd or ""):
        return None

    yy, mm, dd = int(yymmdd[:2]), yymmdd[2:4], yymmdd[4:6]
    year = 2000 + yy if yy <= CENTURY_PIVOT else 1900 + yy
    return f"{year}-{mm}-{dd}"


def normalize_country_code(code: str) -> str:
    """
    Undo the O->0 cleaning for country code lookups.

    Country codes are alphabetic (fillers pad short codes such as "D<<"), so
    a digit 0 there was a letter O before cleaning.
    """
    if not code:
        return code
    restored = code.replace("0", "O")
    if is_code(restored.replace(FILLER_CHAR, "")) and not is_code(code):
        return restored
    return code


def get_country_name(code: str) -> str | None:
    """
    Get a display name for an MRZ country code.

    Uses iso3166 first, then the mrz library (which also knows the ICAO-only
    codes such as "UTO" and "D").
    """
    if not code:
        return None

    lookup = normalize_country_code(code).replace(FILLER_CHAR, "")
    if not lookup:
        return None

    try:
        country = iso3166.countries.get(lookup)
        if country:
            return country.name
    except (KeyError, AttributeError):
        pass

    try:
        name = mrz_get_country(lookup)
        if name:
            return name
    except (KeyError, ValueError, AttributeError):
        pass

    return None
