"""
TED Talk API - Ingest Module

CSV bulk import of talk records.
"""

from .csv_import import CsvImportService, parse_csv

__all__ = ["CsvImportService", "parse_csv"]
