"""Customer segment data model and reservation prices."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .time_period import PeriodId

#: Identifier of the no-purchase option appended to every segment's choice set.
#: Its reservation price is zero in every period, so its surplus is always 0.
NO_PURCHASE = "__no_purchase__"


class Segment(BaseModel):
    """
    Homogeneous group of customers.

    Every customer in a segment makes the same choice: in each period the
    segment buys at most one option, the one with maximum non-negative
    surplus (reservation price minus price paid).

    Attributes:
        id: Unique segment identifier
        name: Segment display name (defaults to id)
        size: Number of customers in the segment
    """
    id: str = Field(..., min_length=1, description="Unique segment identifier")
    name: Optional[str] = Field(None, description="Segment display name")
    size: float = Field(..., description="Number of customers", ge=0)

    model_config = ConfigDict(frozen=True)

    @field_validator('id')
    @classmethod
    def no_whitespace_only(cls, v: str) -> str:
        """Ensure ID is not just whitespace."""
        if not v.strip():
            raise ValueError("Segment ID cannot be whitespace only")
        return v.strip()

    def __str__(self) -> str:
        """String representation."""
        return f"{self.name or self.id} ({self.size:,.0f} customers)"


class ReservationPrice(BaseModel):
    """
    Willingness to pay of a segment for a product in a period.

    Attributes:
        segment_id: Segment identifier
        product_id: Product identifier (or NO_PURCHASE, whose price must be 0)
        period: Period identifier
        price: Maximum price the segment would pay
    """
    segment_id: str = Field(..., description="Segment ID")
    product_id: str = Field(..., description="Product ID or no-purchase option")
    period: PeriodId = Field(..., description="Period ID")
    price: float = Field(..., description="Reservation price", ge=0)

    model_config = ConfigDict(frozen=True)

    def key(self):
        """Dictionary key for parameter lookups."""
        return (self.segment_id, self.product_id, self.period)

    def __str__(self) -> str:
        """String representation."""
        return f"{self.segment_id} values {self.product_id}@{self.period} at {self.price:.2f}"
