"""
Bulk category import.

Reads category lists from JSON files (``data/categories/*.json``), each
holding an array like::

    [
        {"name": "[🏠 Home] Groceries", "notes": "Food and household goods"},
        {"name": "[🚗 Transport] Fuel"}
    ]

and creates one Firefly category per entry. A failing entry (e.g. a name
that already exists) is counted and logged; the batch carries on.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from ..firefly_client import CategoryLocalData, FireflyClient, FireflyError

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES_DIR = Path("data/categories")


class CategoryImportError(Exception):
    """Category files are missing or malformed."""

    pass


@dataclass
class CategoryFile:
    """A category list found on disk."""

    path: Path
    name: str


@dataclass
class ImportFailure:
    name: str
    message: str
    status: int | None = None


@dataclass
class ImportResult:
    """Per-batch counters."""

    total: int = 0
    created: int = 0
    skipped: int = 0
    failures: list[ImportFailure] = field(default_factory=list)

    @property
    def errors(self) -> int:
        return len(self.failures)

    @property
    def success(self) -> bool:
        return not self.failures


def scan_category_files(directory: Path = DEFAULT_CATEGORIES_DIR) -> list[CategoryFile]:
    """List the ``*.json`` files in ``directory``, sorted by name."""
    if not directory.is_dir():
        raise CategoryImportError(f"Categories directory not found: {directory}")

    return [
        CategoryFile(path=path, name=path.stem)
        for path in sorted(directory.glob("*.json"))
        if path.is_file()
    ]


def load_categories_from_file(file_path: Path) -> list[CategoryLocalData]:
    """
    Load and validate a category list.

    Raises:
        CategoryImportError: unreadable file, invalid JSON, not an array,
            or an entry without a non-empty string ``name``
    """
    try:
        with open(file_path, encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, ValueError) as e:
        raise CategoryImportError(f"Failed to load categories from {file_path}: {e}") from e

    if not isinstance(raw, list):
        raise CategoryImportError(
            f"Failed to load categories from {file_path}: "
            "categories file must contain an array"
        )

    categories = []
    for index, item in enumerate(raw):
        name = item.get("name") if isinstance(item, dict) else None
        if not name or not isinstance(name, str):
            raise CategoryImportError(
                f"Failed to load categories from {file_path}: "
                f"entry {index} must have a 'name' field"
            )
        notes = item.get("notes")
        categories.append(
            CategoryLocalData(name=name, notes=notes if isinstance(notes, str) else None)
        )

    return categories


def select_category_file(
    files: list[CategoryFile],
    choice: str | None = None,
    prompt: Callable[[str], str] = input,
) -> CategoryFile:
    """
    Pick the file to import.

    Args:
        files: Candidates from scan_category_files
        choice: File name (stem or full name) or 1-based index; skips the prompt
        prompt: Used to ask the user when several files exist and no choice
            was given. An empty answer picks the first file.
    """
    if not files:
        raise CategoryImportError("No category files found")

    if choice is None:
        if len(files) == 1:
            logger.info("Using only available file: %s", files[0].name)
            return files[0]

        lines = ["Available category files:"]
        lines.extend(f"  {i}. {f.name}" for i, f in enumerate(files, start=1))
        lines.append("Select a file by number [1]: ")
        choice = prompt("\n".join(lines)).strip() or "1"

    if choice.isdigit():
        index = int(choice)
        if 1 <= index <= len(files):
            return files[index - 1]
        raise CategoryImportError(f"Invalid selection: {choice} (1-{len(files)})")

    for f in files:
        if choice in (f.name, f.path.name):
            return f

    raise CategoryImportError(f"Category file not found: {choice}")


async def import_categories(
    client: FireflyClient,
    categories: list[CategoryLocalData],
    dry_run: bool = False,
) -> ImportResult:
    """
    Create each category in Firefly, one request per entry.

    Failures are recorded per entry; processing continues with the next one.
    Pacing between requests is left to the client's rate limiter.
    """
    result = ImportResult(total=len(categories))

    logger.info("Starting import of %d categories...", len(categories))

    for category in categories:
        if dry_run:
            logger.info("[dry-run] Would create: %s", category.name)
            result.skipped += 1
            continue

        try:
            logger.info("Creating: %s", category.name)
            await client.create_category(category.to_request())
            result.created += 1
        except FireflyError as e:
            logger.error("Failed to create %s: %s", category.name, e)
            result.failures.append(
                ImportFailure(name=category.name, message=str(e), status=e.status)
            )

    logger.info(
        "Import finished: %d created, %d errors, %d total",
        result.created,
        result.errors,
        result.total,
    )
    return result
