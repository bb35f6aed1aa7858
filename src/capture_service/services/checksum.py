"""
ICAO 9303 check digit validation.

The same weighted-sum algorithm (weights 7, 3, 1; letters A-Z count 10-35,
the filler '<' counts 0) protects the document number, date of birth and
expiration date fields of every MRZ format. The sum itself comes from the
mrz library; this module adds strict input checking on top of it.
"""

from mrz.base.functions import hash_string

FILLER = "<"
MRZ_CHARACTERS = frozenset("0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ<")


def compute_check_digit(field: str) -> int:
    """
    Compute the ICAO 9303 check digit for a field.

    Raises:
        ValueError: if the field contains a character outside [0-9A-Z<]
    """
    # hash_string upper-cases its input, lowercase must be rejected first
    invalid = set(field) - MRZ_CHARACTERS
    if invalid:
        raise ValueError(f"Invalid MRZ characters: {''.join(sorted(invalid))!r}")
    return int(hash_string(field))


def validate_check_digit(field: str, check: str) -> bool:
    """
    Compare the computed check digit of ``field`` with ``check``.

    A filler in the check position counts as 0. Malformed fields and
    unparseable check characters fail validation instead of raising.
    """
    try:
        expected = compute_check_digit(field)
    except ValueError:
        return False

    if check == FILLER:
        actual = 0
    elif len(check) == 1 and "0" <= check <= "9":
        actual = int(check)
    else:
        return False

    return expected == actual
