"""
Batch tools built on the Firefly client.

Provides:
- category_importer: create categories from local JSON lists
"""

from .category_importer import (
    CategoryFile,
    CategoryImportError,
    ImportResult,
    import_categories,
    load_categories_from_file,
    scan_category_files,
    select_category_file,
)

__all__ = [
    "CategoryFile",
    "CategoryImportError",
    "ImportResult",
    "import_categories",
    "load_categories_from_file",
    "scan_category_files",
    "select_category_file",
]
