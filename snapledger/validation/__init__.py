"""Line item validation package."""

from snapledger.validation.validator import (
    LineItemValidator,
    coerce_amount,
    coerce_date,
)

__all__ = ["LineItemValidator", "coerce_amount", "coerce_date"]
