"""Export-Modul: Excel (openpyxl) und Terminal-Darstellung (rich)."""

from export.excel_export import ExcelExporter
from export.tui_renderer import build_dashboard

__all__ = ["ExcelExporter", "build_dashboard"]
