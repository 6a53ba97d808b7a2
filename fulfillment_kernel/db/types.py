"""
Module: fulfillment_kernel.db.types
Responsibility: Money rounding shared by the read side, so that amounts shown
    to callers are rounded identically everywhere.
Architecture position: Kernel > DB.  MUST NOT import from models/, services/,
    selectors/ or domain/.

CRITICAL: No floats anywhere in the kernel.  All monetary amounts use Decimal
    and are stored as Numeric(38, 9) (see ``db.base``).
"""

from decimal import Decimal, ROUND_HALF_UP

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to specified decimal places.

    This is the only sanctioned rounding function for amounts shown to
    callers; stored amounts keep full precision.
    """
    return value.quantize(Decimal(1).scaleb(-decimal_places), rounding=rounding)
