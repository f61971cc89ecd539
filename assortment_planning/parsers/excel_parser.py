"""Excel parser for reading assortment planning workbooks (.xlsx / .xlsm)."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import pandas as pd

from ..errors import ValidationError
from ..models import ProblemDefinition

logger = logging.getLogger(__name__)


def _period_id(value: Any) -> Union[int, str]:
    """Normalize a period cell: whole numbers become int, everything else str."""
    if isinstance(value, str):
        text = value.strip()
        return int(text) if text.lstrip("-").isdigit() else text
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if hasattr(value, "item"):  # numpy scalar
        return _period_id(value.item())
    if isinstance(value, int):
        return value
    return str(value)


def _optional_float(row: pd.Series, column: str, default=None):
    if column in row and pd.notna(row[column]):
        return float(row[column])
    return default


class ExcelParser:
    """
    Parser for assortment planning workbooks.

    Expected file format:
    - Sheet 'Periods': columns [period] in chronological order
    - Sheet 'Products': columns [id, name?, assortment_cost?]
    - Sheet 'Segments': columns [id, name?, size]
    - Sheet 'ProductPeriods': columns [product_id, period, unit_cost?, holding_cost?, setup_cost?, price_cap]
    - Sheet 'ReservationPrices': columns [segment_id, product_id, period, price]

    Optional columns default to 0. A blank price_cap is reported as missing.
    """

    SHEETS = {
        "Periods": ["period"],
        "Products": ["id"],
        "Segments": ["id", "size"],
        "ProductPeriods": ["product_id", "period", "price_cap"],
        "ReservationPrices": ["segment_id", "product_id", "period", "price"],
    }

    def __init__(self, file_path: Union[Path, str]):
        """
        Initialize parser with Excel file path.

        Args:
            file_path: Path to the Excel file (.xlsm or .xlsx)

        Raises:
            FileNotFoundError: If file does not exist
            ValueError: If file is not .xlsm or .xlsx
        """
        self.file_path = Path(file_path)
        if not self.file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")
        if self.file_path.suffix.lower() not in [".xlsm", ".xlsx"]:
            raise ValueError(f"File must be .xlsm or .xlsx: {file_path}")

    def _read_sheet(self, sheet_name: str) -> pd.DataFrame:
        """Read a sheet and check its required columns.

        Raises:
            ValidationError: If the sheet or a required column is missing
        """
        try:
            df = pd.read_excel(self.file_path, sheet_name=sheet_name, engine="openpyxl")
        except ValueError as e:
            raise ValidationError(
                f"Missing sheet '{sheet_name}'",
                {"file": self.file_path.name, "error": str(e)},
            ) from e

        df.columns = [str(col).strip() for col in df.columns]
        df = df.dropna(how="all")

        missing = [col for col in self.SHEETS[sheet_name] if col not in df.columns]
        if missing:
            raise ValidationError(
                f"Missing required columns in sheet '{sheet_name}'",
                {"file": self.file_path.name, "missing": missing, "found": list(df.columns)},
            )
        return df

    def parse_periods(self, sheet_name: str = "Periods") -> List[Union[int, str]]:
        df = self._read_sheet(sheet_name)
        return [_period_id(v) for v in df["period"] if pd.notna(v)]

    def parse_products(self, sheet_name: str = "Products") -> List[Dict[str, Any]]:
        df = self._read_sheet(sheet_name)
        return [
            {
                "id": str(row["id"]).strip(),
                "name": str(row["name"]) if "name" in row and pd.notna(row["name"]) else None,
                "assortment_cost": _optional_float(row, "assortment_cost", 0.0),
            }
            for _, row in df.iterrows()
        ]

    def parse_segments(self, sheet_name: str = "Segments") -> List[Dict[str, Any]]:
        df = self._read_sheet(sheet_name)
        return [
            {
                "id": str(row["id"]).strip(),
                "name": str(row["name"]) if "name" in row and pd.notna(row["name"]) else None,
                "size": _optional_float(row, "size"),
            }
            for _, row in df.iterrows()
        ]

    def parse_product_periods(self, sheet_name: str = "ProductPeriods") -> List[Dict[str, Any]]:
        df = self._read_sheet(sheet_name)
        return [
            {
                "product_id": str(row["product_id"]).strip(),
                "period": _period_id(row["period"]),
                "unit_cost": _optional_float(row, "unit_cost", 0.0),
                "holding_cost": _optional_float(row, "holding_cost", 0.0),
                "setup_cost": _optional_float(row, "setup_cost", 0.0),
                "price_cap": _optional_float(row, "price_cap"),
            }
            for _, row in df.iterrows()
        ]

    def parse_reservation_prices(self, sheet_name: str = "ReservationPrices") -> List[Dict[str, Any]]:
        df = self._read_sheet(sheet_name)
        return [
            {
                "segment_id": str(row["segment_id"]).strip(),
                "product_id": str(row["product_id"]).strip(),
                "period": _period_id(row["period"]),
                "price": _optional_float(row, "price"),
            }
            for _, row in df.iterrows()
        ]

    def parse_all(self) -> ProblemDefinition:
        """
        Parse every sheet into a validated ProblemDefinition.

        Raises:
            ValidationError: If a sheet or column is missing or the data is invalid
        """
        data = {
            "name": self.file_path.stem,
            "periods": self.parse_periods(),
            "products": self.parse_products(),
            "segments": self.parse_segments(),
            "product_periods": self.parse_product_periods(),
            "reservation_prices": self.parse_reservation_prices(),
        }
        problem = ProblemDefinition.from_dict(data)
        logger.info(f"Parsed {self.file_path.name}: {problem.summary()}")
        return problem


def write_problem_workbook(problem: ProblemDefinition, file_path: Union[Path, str]) -> Path:
    """Write a ProblemDefinition in the layout ExcelParser reads."""
    file_path = Path(file_path)
    sheets = {
        "Periods": pd.DataFrame({"period": list(problem.periods)}),
        "Products": pd.DataFrame(
            [
                {"id": p.id, "name": p.name, "assortment_cost": p.assortment_cost}
                for p in problem.products
            ],
            columns=["id", "name", "assortment_cost"],
        ),
        "Segments": pd.DataFrame(
            [{"id": s.id, "name": s.name, "size": s.size} for s in problem.segments],
            columns=["id", "name", "size"],
        ),
        "ProductPeriods": pd.DataFrame(
            [
                {
                    "product_id": j,
                    "period": t,
                    "unit_cost": problem.unit_cost(j, t),
                    "holding_cost": problem.holding_cost(j, t),
                    "setup_cost": problem.setup_cost(j, t),
                    "price_cap": problem.price_cap(j, t),
                }
                for j in problem.product_ids
                for t in problem.periods
            ],
            columns=["product_id", "period", "unit_cost", "holding_cost", "setup_cost", "price_cap"],
        ),
        "ReservationPrices": pd.DataFrame(
            [
                {
                    "segment_id": i,
                    "product_id": j,
                    "period": t,
                    "price": problem.reservation_price(i, j, t),
                }
                for i in problem.segment_ids
                for j in problem.product_ids
                for t in problem.periods
            ],
            columns=["segment_id", "product_id", "period", "price"],
        ),
    }
    with pd.ExcelWriter(file_path, engine="openpyxl") as writer:
        for name, df in sheets.items():
            df.to_excel(writer, sheet_name=name, index=False)
    return file_path
