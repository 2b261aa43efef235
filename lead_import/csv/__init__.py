from .reader import CsvData, CsvStructureError, parse_csv_text, read_csv_file

__all__ = [
    "CsvData",
    "CsvStructureError",
    "parse_csv_text",
    "read_csv_file",
]
