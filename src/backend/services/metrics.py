"""
Percentage and traffic-light helpers shared by the compliance and war-room views.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from core.config import settings

STATUS_GREEN = "green"
STATUS_YELLOW = "yellow"
STATUS_RED = "red"


def percentage(part: int, whole: int, digits: int = 0) -> Union[int, float]:
    """
    part / whole as a percentage, rounded half up.

    Returns an int for ``digits=0`` and 0 whenever ``whole`` is not positive.
    """
    if whole <= 0:
        return 0 if digits == 0 else 0.0
    exponent = Decimal(1).scaleb(-digits)
    value = (Decimal(part) * 100 / Decimal(whole)).quantize(exponent, rounding=ROUND_HALF_UP)
    return int(value) if digits == 0 else float(value)


def coverage_status(
    coverage: float,
    green: int | None = None,
    yellow: int | None = None,
) -> str:
    """Traffic-light status for a coverage percentage."""
    green = settings.COVERAGE_GREEN_THRESHOLD if green is None else green
    yellow = settings.COVERAGE_YELLOW_THRESHOLD if yellow is None else yellow
    if coverage >= green:
        return STATUS_GREEN
    if coverage >= yellow:
        return STATUS_YELLOW
    return STATUS_RED
