"""Invoice reconciliation console: workbook extraction, categorization and import."""

__version__ = "0.1.0"
