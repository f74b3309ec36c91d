import csv
from dataclasses import dataclass
import logging
from pathlib import Path
import random
from typing import Optional, Union

from samuraicord.exceptions import TableError

NAME_COLUMN = "Name"
DESCRIPTION_COLUMN = "Description"


@dataclass(frozen=True)
class SamuraiEntry:
    name: str
    description: str


def read_samurai_csv(path: Union[str, Path]) -> list[SamuraiEntry]:
    # utf-8-sig: spreadsheets exported on Windows prepend a BOM to the header row.
    with open(path, encoding="utf-8-sig", newline="") as file:
        reader = csv.reader(file)
        headers = next(reader, None)
        if headers is None:
            raise TableError(f"'{path}' is empty, expected a header row")

        name_index = _column_index(headers, NAME_COLUMN)
        description_index = _column_index(headers, DESCRIPTION_COLUMN)

        entries = []
        for row in reader:
            if not row:
                continue
            entries.append(SamuraiEntry(
                name=row[name_index] if name_index < len(row) else "",
                description=row[description_index] if description_index < len(row) else "",
            ))
    return entries


def _column_index(headers: list[str], column: str) -> int:
    try:
        return headers.index(column)
    except ValueError:
        raise TableError(f"Failed to find '{column}' column") from None


def get_random_samurai_id(length: int, rng: Optional[random.Random] = None) -> int:
    return (rng or random).randrange(length)


def get_samurai_name(entries: list[SamuraiEntry], rng: Optional[random.Random] = None) -> Optional[str]:
    """Pick a random entry and format it as "{id}: {name}\\n{description}"."""
    if not entries:
        logging.error("Samurai entries are empty")
        return None

    samurai_id = get_random_samurai_id(len(entries), rng)
    entry = entries[samurai_id]
    logging.info(f"Samurai ID: {samurai_id}, Name: {entry.name}, Description: {entry.description}")
    return f"{samurai_id}: {entry.name}\n{entry.description}"
