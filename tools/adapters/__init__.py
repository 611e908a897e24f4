"""Workbook adapters implementing domain ports."""

from tools.adapters.openpyxl_workbook import OpenpyxlWorkbookReader

__all__ = ["OpenpyxlWorkbookReader"]
