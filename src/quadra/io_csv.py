"""CSV import utilities."""

import csv
import logging
from pathlib import Path
from typing import Optional

from quadra.models import Entrant, Fixture, MatchResult
from quadra.validation import validate_set_score

logger = logging.getLogger(__name__)

ENTRANT_COLUMNS = {"id", "name"}
FIXTURE_COLUMNS = ["fixture_id", "group", "round", "a1", "a2", "b1", "b2"]
SCORE_COLUMNS = ["games_a", "games_b"]


class CSVImportError(Exception):
    """Error during CSV import."""
    pass


def validate_entrant_row(row: dict, row_num: int) -> dict:
    """Validate an entrant row from CSV.

    Args:
        row: Dictionary with CSV columns
        row_num: Row number for error messages

    Returns:
        Validated dictionary with cleaned data

    Raises:
        CSVImportError: If validation fails
    """
    errors = []

    for field in ("id", "name"):
        if not (row.get(field) or "").strip():
            errors.append(f"Missing required field '{field}'")

    if errors:
        raise CSVImportError(f"Row {row_num}: {', '.join(errors)}")

    return {
        "id": row["id"].strip(),
        "name": row["name"].strip(),
        "tier": (row.get("tier") or "").strip().upper() or None,
        "category": (row.get("category") or "").strip().upper() or None,
    }


def import_entrants_csv(
    csv_path: str,
    category_filter: Optional[str] = None,
    skip_duplicates: bool = True,
) -> list[Entrant]:
    """Import entrants from CSV file.

    CSV format:
        id,name,tier,category
        p01,Ana Souza,A,MIXED

    Args:
        csv_path: Path to CSV file
        category_filter: Only import entrants from this category (None = all)
        skip_duplicates: Skip rows with an id already seen (otherwise fail)

    Returns:
        List of Entrant objects in file order

    Raises:
        CSVImportError: If file not found or validation fails
    """
    csv_file = Path(csv_path)
    if not csv_file.exists():
        raise CSVImportError(f"CSV file not found: {csv_path}")

    entrants = []
    seen_ids = set()
    skipped_count = 0

    with open(csv_file, "r", encoding="utf-8") as f:
        reader = csv.DictReader(f)

        if not ENTRANT_COLUMNS.issubset(set(reader.fieldnames or [])):
            missing = ENTRANT_COLUMNS - set(reader.fieldnames or [])
            raise CSVImportError(f"CSV missing required columns: {sorted(missing)}")

        for row_num, row in enumerate(reader, start=2):  # Row 1 is header
            validated = validate_entrant_row(row, row_num)

            if category_filter and validated["category"] != category_filter.upper():
                skipped_count += 1
                continue

            if validated["id"] in seen_ids:
                if not skip_duplicates:
                    raise CSVImportError(f"Row {row_num}: Duplicate id '{validated['id']}'")
                logger.warning("Row %d: duplicate id %s, skipping", row_num, validated["id"])
                skipped_count += 1
                continue

            seen_ids.add(validated["id"])
            entrants.append(Entrant(**validated))

    logger.info("Validated %d entrants from %s", len(entrants), csv_path)
    if skipped_count > 0:
        logger.info("Skipped %d rows (category filter or duplicates)", skipped_count)

    return entrants


def _parse_games(row: dict, column: str, row_num: int) -> int:
    try:
        return int(row[column])
    except ValueError:
        raise CSVImportError(f"Row {row_num}: '{column}' must be a number, got '{row[column]}'")


def import_results_csv(csv_path: str) -> list[MatchResult]:
    """Import fixture results from CSV file.

    The file is the fixtures export with the two score columns filled in.
    Rows whose scores are both blank are fixtures not played yet and are
    skipped.

    CSV format:
        fixture_id,group,round,a1,a2,b1,b2,games_a,games_b
        A-1,A,1,p01,p02,p03,p04,6,3

    Returns:
        List of MatchResult objects in file order

    Raises:
        CSVImportError: If file not found, a column is missing or a score is invalid
    """
    csv_file = Path(csv_path)
    if not csv_file.exists():
        raise CSVImportError(f"CSV file not found: {csv_path}")

    results = []
    pending = 0

    with open(csv_file, "r", encoding="utf-8") as f:
        reader = csv.DictReader(f)

        required_cols = set(FIXTURE_COLUMNS + SCORE_COLUMNS)
        if not required_cols.issubset(set(reader.fieldnames or [])):
            missing = required_cols - set(reader.fieldnames or [])
            raise CSVImportError(f"CSV missing required columns: {sorted(missing)}")

        for row_num, row in enumerate(reader, start=2):
            row = {k: (v or "").strip() for k, v in row.items() if k}

            if not row["games_a"] and not row["games_b"]:
                pending += 1
                continue

            missing = [c for c in FIXTURE_COLUMNS if c not in ("group", "round") and not row[c]]
            if missing:
                raise CSVImportError(f"Row {row_num}: Missing required field(s) {missing}")

            games_a = _parse_games(row, "games_a", row_num)
            games_b = _parse_games(row, "games_b", row_num)
            is_valid, error_msg = validate_set_score(games_a, games_b)
            if not is_valid:
                raise CSVImportError(f"Row {row_num} (fixture {row['fixture_id']}): {error_msg}")

            fixture = Fixture(
                id=row["fixture_id"],
                side_a=(row["a1"], row["a2"]),
                side_b=(row["b1"], row["b2"]),
                ordinal=row_num - 1,
                round_number=int(row["round"]) if row["round"].isdigit() else None,
                group_name=row["group"] or None,
            )
            results.append(MatchResult(fixture=fixture, games_a=games_a, games_b=games_b))

    logger.info("Read %d results from %s (%d fixtures pending)", len(results), csv_path, pending)
    return results
