"""Parsers for input data files."""

from .excel_parser import ExcelParser, write_problem_workbook

__all__ = ["ExcelParser", "write_problem_workbook"]
