"""Tests for the Excel workbook parser.

Workbooks are generated in tmp_path with write_problem_workbook / pandas.
"""

import pandas as pd
import pytest

from assortment_planning.errors import ValidationError
from assortment_planning.models import NO_PURCHASE
from assortment_planning.parsers import ExcelParser, write_problem_workbook
from tests.fixtures.problems import make_problem


def write_sheets(path, sheets):
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for name, df in sheets.items():
            df.to_excel(writer, sheet_name=name, index=False)
    return path


def minimal_sheets():
    return {
        "Periods": pd.DataFrame({"period": [1, 2]}),
        "Products": pd.DataFrame({"id": ["A"], "assortment_cost": [1.5]}),
        "Segments": pd.DataFrame({"id": ["S1"], "size": [10]}),
        "ProductPeriods": pd.DataFrame({
            "product_id": ["A", "A"],
            "period": [1, 2],
            "unit_cost": [1.0, 1.0],
            "price_cap": [5.0, 5.0],
        }),
        "ReservationPrices": pd.DataFrame({
            "segment_id": ["S1", "S1"],
            "product_id": ["A", "A"],
            "period": [1, 2],
            "price": [5.0, 4.0],
        }),
    }


class TestExcelParserInit:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ExcelParser(tmp_path / "missing.xlsx")

    def test_wrong_suffix(self, tmp_path):
        path = tmp_path / "data.csv"
        path.write_text("id\nA\n")
        with pytest.raises(ValueError, match=".xlsm or .xlsx"):
            ExcelParser(path)


class TestRoundTrip:
    """write_problem_workbook output parses back to the same problem."""

    def test_small_problem(self, small_problem, tmp_path):
        path = write_problem_workbook(small_problem, tmp_path / "small.xlsx")
        parsed = ExcelParser(path).parse_all()

        assert parsed.name == "small"
        assert parsed.periods == small_problem.periods
        assert parsed.product_ids == small_problem.product_ids
        assert parsed.segment_ids == small_problem.segment_ids
        for j in parsed.product_ids:
            assert parsed.assortment_cost(j) == small_problem.assortment_cost(j)
            for t in parsed.periods:
                assert parsed.unit_cost(j, t) == small_problem.unit_cost(j, t)
                assert parsed.holding_cost(j, t) == small_problem.holding_cost(j, t)
                assert parsed.setup_cost(j, t) == small_problem.setup_cost(j, t)
                assert parsed.price_cap(j, t) == small_problem.price_cap(j, t)
                for i in parsed.segment_ids:
                    assert parsed.reservation_price(i, j, t) == small_problem.reservation_price(i, j, t)
        assert parsed.segment_size("S2") == 5.0

    def test_labelled_periods(self, tmp_path):
        problem = make_problem(
            periods=("2025-W01", "2025-W02"), segments={"S1": 3.0}, products={"A": 0.0},
            reservation=4.0, price_cap=6.0,
        )
        path = write_problem_workbook(problem, tmp_path / "weeks.xlsx")
        parsed = ExcelParser(path).parse_all()
        assert parsed.periods == ("2025-W01", "2025-W02")
        assert parsed.horizon.first == "2025-W01"

    def test_optional_columns_default_to_zero(self, tmp_path):
        path = write_sheets(tmp_path / "minimal.xlsx", minimal_sheets())
        problem = ExcelParser(path).parse_all()
        assert problem.holding_cost("A", 1) == 0.0
        assert problem.setup_cost("A", 2) == 0.0
        assert problem.reservation_price("S1", "A", 2) == 4.0
        assert problem.reservation_price("S1", NO_PURCHASE, 2) == 0.0
        assert problem.product("A").name is None


class TestValidation:
    """Structural problems in the workbook raise ValidationError."""

    def test_missing_sheet(self, tmp_path):
        sheets = minimal_sheets()
        del sheets["Segments"]
        path = write_sheets(tmp_path / "no_segments.xlsx", sheets)
        with pytest.raises(ValidationError, match="Missing sheet 'Segments'"):
            ExcelParser(path).parse_all()

    def test_missing_column(self, tmp_path):
        sheets = minimal_sheets()
        sheets["Segments"] = pd.DataFrame({"id": ["S1"]})
        path = write_sheets(tmp_path / "no_size.xlsx", sheets)
        with pytest.raises(ValidationError, match="Missing required columns") as exc_info:
            ExcelParser(path).parse_segments()
        assert exc_info.value.context["missing"] == ["size"]

    def test_blank_price_cap(self, tmp_path):
        sheets = minimal_sheets()
        sheets["ProductPeriods"].loc[1, "price_cap"] = None
        path = write_sheets(tmp_path / "blank_cap.xlsx", sheets)
        with pytest.raises(ValidationError, match="Missing price cap"):
            ExcelParser(path).parse_all()

    def test_negative_size(self, tmp_path):
        sheets = minimal_sheets()
        sheets["Segments"] = pd.DataFrame({"id": ["S1"], "size": [-3]})
        path = write_sheets(tmp_path / "negative.xlsx", sheets)
        with pytest.raises(ValidationError, match="Invalid entry in 'segments'"):
            ExcelParser(path).parse_all()

    def test_missing_reservation_row(self, tmp_path):
        sheets = minimal_sheets()
        sheets["ReservationPrices"] = sheets["ReservationPrices"].iloc[:1]
        path = write_sheets(tmp_path / "short.xlsx", sheets)
        with pytest.raises(ValidationError, match="Missing reservation prices"):
            ExcelParser(path).parse_all()
