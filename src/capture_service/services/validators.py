"""
Advisory checks on parsed MRZ fields.

These never change MrzData.is_valid (which only reflects check digits);
they produce issue codes that a caller can show or use to route a
document to manual review.
"""

from datetime import date, datetime

from .mrz_parser import MrzData, format_date

VALID_SEX_MARKERS = frozenset({"M", "F", "X", "<"})
MAX_PLAUSIBLE_AGE = 150
ADULT_AGE = 18


def _parse_iso(value: str) -> date:
    return datetime.strptime(value, "%Y-%m-%d").date()


def validate_expiration_date(exp_date: str | None, today: date | None = None) -> list[str]:
    """Check if document is expired."""
    issues = []

    if not exp_date:
        return issues  # Can't validate if no date

    try:
        exp = _parse_iso(exp_date)
        if exp < (today or date.today()):
            issues.append("document_expired")
    except ValueError:
        issues.append("invalid_expiration_format")

    return issues


def validate_dob(dob: str | None, today: date | None = None) -> list[str]:
    """Validate date of birth is reasonable."""
    issues = []

    if not dob:
        return issues

    try:
        birth = _parse_iso(dob)
        today = today or date.today()
        age = (today - birth).days // 365

        if age < 0 or age > MAX_PLAUSIBLE_AGE:
            issues.append("invalid_date_of_birth")
        elif age < ADULT_AGE:
            issues.append("minor_age_detected")
    except ValueError:
        issues.append("invalid_dob_format")

    return issues


def validate_mrz_fields(data: MrzData, today: date | None = None) -> list[str]:
    """
    Run the advisory checks over a parsed MRZ.

    Dates that are not six digits are reported as format issues; dates with
    impossible months or days fail ISO parsing and are reported the same way.
    """
    issues = []

    if not data.document_number:
        issues.append("missing_document_number")

    expiration = format_date(data.expiration_date)
    if expiration is None:
        issues.append("invalid_expiration_format")
    else:
        issues.extend(validate_expiration_date(expiration, today))

    birth = format_date(data.date_of_birth)
    if birth is None:
        issues.append("invalid_dob_format")
    else:
        issues.extend(validate_dob(birth, today))

    if data.sex not in VALID_SEX_MARKERS:
        issues.append("invalid_sex_marker")

    return issues
