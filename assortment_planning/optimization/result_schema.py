"""Pydantic schemas for assortment planning results.

This module defines the contract between the optimization model and its
consumers (CLI, reports, tests). The model MUST return results conforming to
these schemas; invalid data raises pydantic.ValidationError at the boundary.

Design Principles:
1. Fail Fast: Inconsistent totals are rejected when the solution is built
2. Single Source of Truth: Every reported quantity comes from the solver output
3. Tabular Views: schedule_frame() / choice_frame() give pandas DataFrames
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Union

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models.segment import NO_PURCHASE
from ..models.time_period import PeriodId
from .base_model import SolveStatus
from .constants import CONSISTENCY_TOLERANCE


def _close(a: float, b: float) -> bool:
    return abs(a - b) <= CONSISTENCY_TOLERANCE * max(1.0, abs(a), abs(b))


# ============================================================================
# Core Data Structures
# ============================================================================

class ProductPeriodDecision(BaseModel):
    """Price, order and inventory decision for one product in one period."""
    product: str = Field(..., description="Product ID")
    period: PeriodId = Field(..., description="Period ID")
    assorted: bool = Field(..., description="Product is carried")
    price: float = Field(..., ge=0, description="Selling price (0 if not assorted)")
    setup: bool = Field(..., description="Order placed in this period")
    order_quantity: float = Field(..., ge=0, description="Units ordered")
    inventory: float = Field(..., ge=0, description="End-of-period inventory")
    demand: float = Field(..., ge=0, description="Realized demand (units)")
    revenue: float = Field(default=0.0, ge=0, description="Revenue collected")

    model_config = ConfigDict(frozen=True)


class SegmentChoice(BaseModel):
    """Option chosen by a segment in a period (product ID or NO_PURCHASE)."""
    segment: str = Field(..., description="Segment ID")
    period: PeriodId = Field(..., description="Period ID")
    choice: str = Field(..., description="Chosen product ID or no-purchase marker")
    price_paid: float = Field(default=0.0, ge=0, description="Price paid per customer")
    surplus: float = Field(default=0.0, description="Reservation price minus price paid")
    size: float = Field(default=0.0, ge=0, description="Segment size")

    model_config = ConfigDict(frozen=True)

    @property
    def purchased(self) -> bool:
        return self.choice != NO_PURCHASE


# ============================================================================
# Cost Breakdown
# ============================================================================

class ProfitBreakdown(BaseModel):
    """Revenue and cost components of a plan."""
    revenue: float = Field(..., ge=0, description="Sales revenue")
    procurement_cost: float = Field(default=0.0, ge=0, description="Unit cost of ordered quantities")
    setup_cost: float = Field(default=0.0, ge=0, description="Fixed order setup costs")
    holding_cost: float = Field(default=0.0, ge=0, description="End-of-period inventory holding")
    assortment_cost: float = Field(default=0.0, ge=0, description="Fixed cost of carried products")
    total_cost: float = Field(..., ge=0, description="Sum of all cost components")
    profit: float = Field(..., description="Revenue minus total cost")

    @model_validator(mode='after')
    def validate_totals(self):
        """Validate that total_cost and profit agree with the components."""
        component_sum = (
            self.procurement_cost
            + self.setup_cost
            + self.holding_cost
            + self.assortment_cost
        )
        if not _close(self.total_cost, component_sum):
            raise ValueError(
                f"total_cost ({self.total_cost:.4f}) does not match sum of components ({component_sum:.4f})"
            )
        if not _close(self.profit, self.revenue - self.total_cost):
            raise ValueError(
                f"profit ({self.profit:.4f}) != revenue - total_cost "
                f"({self.revenue - self.total_cost:.4f})"
            )
        return self


# ============================================================================
# Top-Level Solution Schema
# ============================================================================

class PlanningSolution(BaseModel):
    """Assortment, pricing and inventory plan extracted from a solved model.

    Required Fields:
        - status / gap: solver termination status and relative MIP gap
        - assortment: product ID -> carried
        - decisions: one ProductPeriodDecision per (product, period)
        - choices: one SegmentChoice per (segment, period)
        - costs: revenue and cost breakdown
        - total_profit: objective value (must match costs.profit)
    """

    problem_name: str = Field(default="problem", description="Name of the solved problem")
    status: SolveStatus = Field(..., description="Solver termination status")
    gap: Optional[float] = Field(None, ge=0, description="Relative MIP gap (0 when optimal)")
    solver_name: Optional[str] = Field(None, description="Solver used")

    assortment: Dict[str, bool] = Field(..., description="Product ID -> carried")
    decisions: List[ProductPeriodDecision] = Field(..., description="Per product-period decisions")
    choices: List[SegmentChoice] = Field(..., description="Per segment-period choices")

    costs: ProfitBreakdown = Field(..., description="Revenue and cost breakdown")
    total_profit: float = Field(..., description="Total profit (objective value)")

    model_config = ConfigDict(frozen=True)

    @field_validator('decisions')
    @classmethod
    def validate_unique_decisions(cls, v):
        """Each (product, period) appears at most once."""
        seen = set()
        for d in v:
            key = (d.product, d.period)
            if key in seen:
                raise ValueError(f"Duplicate decision for product {d.product!r}, period {d.period!r}")
            seen.add(key)
        return v

    @model_validator(mode='after')
    def validate_consistency(self):
        """Cross-field consistency validation."""
        if not _close(self.total_profit, self.costs.profit):
            raise ValueError(
                f"total_profit ({self.total_profit:.4f}) != costs.profit ({self.costs.profit:.4f})"
            )

        for d in self.decisions:
            if d.product not in self.assortment:
                raise ValueError(f"Decision for product {d.product!r} missing from assortment")
            if not self.assortment[d.product] and (d.price > 0 or d.setup or d.demand > 0):
                raise ValueError(
                    f"Product {d.product!r} is not assorted but has activity in period {d.period!r}"
                )

        revenue = sum(d.revenue for d in self.decisions)
        if not _close(revenue, self.costs.revenue):
            raise ValueError(
                f"Sum of decision revenues ({revenue:.4f}) != costs.revenue ({self.costs.revenue:.4f})"
            )
        return self

    # ========================================================================
    # Helper Methods
    # ========================================================================

    @property
    def assorted_products(self) -> List[str]:
        return [j for j, carried in self.assortment.items() if carried]

    def decision(self, product: str, period: PeriodId) -> ProductPeriodDecision:
        for d in self.decisions:
            if d.product == product and d.period == period:
                return d
        raise KeyError((product, period))

    def choice_of(self, segment: str, period: PeriodId) -> str:
        for c in self.choices:
            if c.segment == segment and c.period == period:
                return c.choice
        raise KeyError((segment, period))

    def schedule_frame(self) -> pd.DataFrame:
        """Per product-period schedule as a DataFrame."""
        columns = list(ProductPeriodDecision.model_fields.keys())
        return pd.DataFrame([d.model_dump() for d in self.decisions], columns=columns)

    def choice_frame(self) -> pd.DataFrame:
        """Per segment-period choices as a DataFrame."""
        columns = list(SegmentChoice.model_fields.keys())
        return pd.DataFrame([c.model_dump() for c in self.choices], columns=columns)

    def summary_frame(self) -> pd.DataFrame:
        """Status, gap and profit breakdown as a two-column DataFrame."""
        rows = [
            ("problem", self.problem_name),
            ("status", self.status.value),
            ("gap", self.gap),
            ("solver", self.solver_name),
            ("assorted_products", ", ".join(self.assorted_products)),
        ]
        rows.extend(self.costs.model_dump().items())
        return pd.DataFrame(rows, columns=["metric", "value"])

    def to_excel(self, path: Union[str, Path]) -> Path:
        """Write summary, schedule and choices to an Excel workbook (openpyxl)."""
        path = Path(path)
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            self.summary_frame().to_excel(writer, sheet_name="Summary", index=False)
            self.schedule_frame().to_excel(writer, sheet_name="Schedule", index=False)
            self.choice_frame().to_excel(writer, sheet_name="Choices", index=False)
        return path
