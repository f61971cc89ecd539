"""Tests for PlanningSolution and its pydantic sub-schemas."""

import pandas as pd
import pytest
from pydantic import ValidationError

from assortment_planning.models import NO_PURCHASE
from assortment_planning.optimization import (
    PlanningSolution,
    ProductPeriodDecision,
    ProfitBreakdown,
    SegmentChoice,
    SolveStatus,
)


def decision(product="A", period=1, assorted=True, price=5.0, setup=True,
             order=10.0, inventory=0.0, demand=10.0, revenue=50.0):
    return ProductPeriodDecision(
        product=product, period=period, assorted=assorted, price=price, setup=setup,
        order_quantity=order, inventory=inventory, demand=demand, revenue=revenue,
    )


def costs(revenue=50.0, procurement=10.0):
    return ProfitBreakdown(
        revenue=revenue,
        procurement_cost=procurement,
        total_cost=procurement,
        profit=revenue - procurement,
    )


def solution(**overrides):
    fields = dict(
        problem_name="unit",
        status=SolveStatus.OPTIMAL,
        gap=0.0,
        solver_name="appsi_highs",
        assortment={"A": True, "B": False},
        decisions=[
            decision(),
            decision(product="B", assorted=False, price=0.0, setup=False,
                     order=0.0, demand=0.0, revenue=0.0),
        ],
        choices=[
            SegmentChoice(segment="S1", period=1, choice="A", price_paid=5.0, surplus=1.0, size=10.0),
            SegmentChoice(segment="S2", period=1, choice=NO_PURCHASE, size=4.0),
        ],
        costs=costs(),
        total_profit=40.0,
    )
    fields.update(overrides)
    return PlanningSolution(**fields)


class TestProfitBreakdown:
    def test_valid_breakdown(self):
        breakdown = ProfitBreakdown(
            revenue=100.0, procurement_cost=20.0, setup_cost=4.0,
            holding_cost=1.0, assortment_cost=5.0, total_cost=30.0, profit=70.0,
        )
        assert breakdown.profit == 70.0

    def test_total_cost_mismatch(self):
        with pytest.raises(ValidationError, match="total_cost"):
            ProfitBreakdown(revenue=100.0, procurement_cost=20.0, total_cost=25.0, profit=75.0)

    def test_profit_mismatch(self):
        with pytest.raises(ValidationError, match="profit"):
            ProfitBreakdown(revenue=100.0, procurement_cost=20.0, total_cost=20.0, profit=70.0)

    def test_negative_revenue_rejected(self):
        with pytest.raises(ValidationError):
            ProfitBreakdown(revenue=-1.0, total_cost=0.0, profit=-1.0)


class TestPlanningSolution:
    """Cross-field validation and helpers."""

    def test_valid_solution(self):
        s = solution()
        assert s.assorted_products == ["A"]
        assert s.decision("A", 1).price == 5.0
        assert s.choice_of("S2", 1) == NO_PURCHASE
        assert s.choices[0].purchased
        assert not s.choices[1].purchased

    def test_lookup_missing(self):
        s = solution()
        with pytest.raises(KeyError):
            s.decision("A", 2)
        with pytest.raises(KeyError):
            s.choice_of("S3", 1)

    def test_profit_must_match_costs(self):
        with pytest.raises(ValidationError, match="total_profit"):
            solution(total_profit=41.0)

    def test_duplicate_decisions(self):
        with pytest.raises(ValidationError, match="Duplicate decision"):
            solution(decisions=[decision(), decision()], assortment={"A": True})

    def test_unassorted_product_without_activity(self):
        with pytest.raises(ValidationError, match="not assorted"):
            solution(assortment={"A": False, "B": False})

    def test_revenue_must_match(self):
        with pytest.raises(ValidationError, match="decision revenues"):
            solution(costs=costs(revenue=60.0), total_profit=50.0)

    def test_negative_gap_rejected(self):
        with pytest.raises(ValidationError):
            solution(gap=-0.1)

    def test_frozen(self):
        s = solution()
        with pytest.raises(ValidationError):
            s.total_profit = 0.0

    def test_json_dump(self):
        dumped = solution().model_dump(mode="json")
        assert dumped["status"] == "optimal"
        assert dumped["costs"]["profit"] == 40.0


class TestFrames:
    """pandas views and Excel export."""

    def test_schedule_frame(self):
        df = solution().schedule_frame()
        assert isinstance(df, pd.DataFrame)
        assert len(df) == 2
        assert list(df.columns[:3]) == ["product", "period", "assorted"]
        assert df.loc[df["product"] == "A", "revenue"].iloc[0] == 50.0

    def test_choice_frame(self):
        df = solution().choice_frame()
        assert list(df["choice"]) == ["A", NO_PURCHASE]

    def test_summary_frame(self):
        df = solution().summary_frame()
        metrics = dict(zip(df["metric"], df["value"]))
        assert metrics["status"] == "optimal"
        assert metrics["profit"] == 40.0
        assert metrics["assorted_products"] == "A"

    def test_to_excel(self, tmp_path):
        path = solution().to_excel(tmp_path / "plan.xlsx")
        sheets = pd.read_excel(path, sheet_name=None, engine="openpyxl")
        assert set(sheets) == {"Summary", "Schedule", "Choices"}
        assert len(sheets["Schedule"]) == 2
        assert list(sheets["Choices"]["segment"]) == ["S1", "S2"]
