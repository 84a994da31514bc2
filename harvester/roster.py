"""
Roster loading.

The roster is the portal's student export: a JSON array (or CSV file) of
records with the columns First, Last, Grade, "Math Period" and
"Student Progress Link".
"""

import csv
import io
import json
import logging
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Union

from harvester.errors import RosterFormatError
from harvester.models import SubjectRecord

logger = logging.getLogger(__name__)

FIRST = "First"
LAST = "Last"
GRADE = "Grade"
PERIOD = "Math Period"
LINK = "Student Progress Link"

REQUIRED_COLUMNS = (FIRST, LAST)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _to_record(entry: Any, position: int) -> SubjectRecord:
    if not isinstance(entry, Mapping):
        raise RosterFormatError(f"roster entry {position} is not an object: {entry!r}")

    missing = [c for c in REQUIRED_COLUMNS if not _text(entry.get(c))]
    if missing:
        raise RosterFormatError(f"roster entry {position} is missing {', '.join(missing)}")

    return SubjectRecord(
        first_name=_text(entry.get(FIRST)),
        last_name=_text(entry.get(LAST)),
        grade=_text(entry.get(GRADE)),
        period=_text(entry.get(PERIOD)),
        profile_link=_text(entry.get(LINK)),
    )


def parse_roster(entries: Iterable[Any]) -> List[SubjectRecord]:
    """
    Convert raw roster entries into subject records, keeping their order.

    Args:
        entries: Mappings keyed by the roster column names

    Returns:
        List of SubjectRecord in source order

    Raises:
        RosterFormatError: If any entry does not have the expected shape
    """
    return [_to_record(entry, i) for i, entry in enumerate(entries, 1)]


def _read_json(text: str) -> List[Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise RosterFormatError(f"roster is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise RosterFormatError("roster JSON must be an array of records")
    return data


def _read_csv(text: str) -> List[Any]:
    reader = csv.DictReader(io.StringIO(text))
    try:
        fields = reader.fieldnames or []
        rows = list(reader)
    except csv.Error as e:
        raise RosterFormatError(f"roster is not valid CSV: {e}") from e
    missing = [c for c in REQUIRED_COLUMNS if c not in fields]
    if missing:
        raise RosterFormatError(f"roster CSV header is missing {', '.join(missing)}")
    return rows


def load_roster(path: Union[str, Path]) -> List[SubjectRecord]:
    """
    Load the roster file.

    Args:
        path: JSON or CSV roster file (chosen by extension, JSON otherwise)

    Returns:
        List of SubjectRecord in file order

    Raises:
        RosterFormatError: If the file is missing or cannot be parsed
    """
    path = Path(path)
    try:
        text = path.read_text(encoding='utf-8-sig')
    except OSError as e:
        raise RosterFormatError(f"cannot read roster {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise RosterFormatError(f"roster {path} is not valid UTF-8: {e}") from e

    if path.suffix.lower() == '.csv':
        entries = _read_csv(text)
    else:
        entries = _read_json(text)

    subjects = parse_roster(entries)
    logger.info("Loaded %d roster entries from %s", len(subjects), path)
    return subjects
