"""Bulk import: file pairing, submission, the staged pipeline and CSV export."""

from .csv_export import CSV_COLUMNS, generate_csv
from .file_pairing import CategoryPolicy, FilePair, RawFile, pair_files, validate_pairs
from .import_pipeline import ImportPipeline
from .import_service import ImportRequestError, ImportService

__all__ = [
    "CSV_COLUMNS",
    "CategoryPolicy",
    "FilePair",
    "ImportPipeline",
    "ImportRequestError",
    "ImportService",
    "RawFile",
    "generate_csv",
    "pair_files",
    "validate_pairs",
]
