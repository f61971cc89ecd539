"""Product data model and per-period product parameters."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .time_period import PeriodId


class Product(BaseModel):
    """
    Represents a product the retailer may carry.

    The assortment decision is made once for the whole horizon, so the fixed
    assortment cost is time-invariant. Period-dependent costs live in
    ProductPeriodCost.

    Attributes:
        id: Unique product identifier
        name: Product display name (defaults to id)
        assortment_cost: Fixed cost incurred if the product is carried
    """
    id: str = Field(..., min_length=1, description="Unique product identifier")
    name: Optional[str] = Field(None, description="Product display name")
    assortment_cost: float = Field(
        default=0.0,
        description="Fixed cost of carrying the product for the horizon",
        ge=0
    )

    model_config = ConfigDict(frozen=True)

    @field_validator('id')
    @classmethod
    def no_whitespace_only(cls, v: str) -> str:
        """Ensure ID is not just whitespace."""
        if not v.strip():
            raise ValueError("Product ID cannot be whitespace only")
        return v.strip()

    @property
    def display_name(self) -> str:
        return self.name or self.id

    def __str__(self) -> str:
        """String representation."""
        return f"{self.display_name} ({self.id})"


class ProductPeriodCost(BaseModel):
    """
    Cost and price-cap parameters of one product in one period.

    Attributes:
        product_id: Product identifier
        period: Period identifier
        unit_cost: Procurement cost per unit ordered
        holding_cost: Cost per unit of end-of-period inventory
        setup_cost: Fixed cost of placing an order in the period
        price_cap: Upper bound on the selling price. None means not provided,
            which fails problem validation. ``inf`` means uncapped and must
            be derived from reservation prices at model assembly.
    """
    product_id: str = Field(..., description="Product ID")
    period: PeriodId = Field(..., description="Period ID")
    unit_cost: float = Field(default=0.0, description="Procurement cost per unit", ge=0)
    holding_cost: float = Field(default=0.0, description="Holding cost per unit per period", ge=0)
    setup_cost: float = Field(default=0.0, description="Fixed order setup cost", ge=0)
    price_cap: Optional[float] = Field(None, description="Selling price upper bound", ge=0)

    model_config = ConfigDict(frozen=True)

    def key(self):
        """Dictionary key for parameter lookups."""
        return (self.product_id, self.period)

    def __str__(self) -> str:
        """String representation."""
        return (
            f"{self.product_id}@{self.period}: unit={self.unit_cost:.2f}, "
            f"hold={self.holding_cost:.2f}, setup={self.setup_cost:.2f}, cap={self.price_cap}"
        )
