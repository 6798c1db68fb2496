"""CSV sanitizing: removes disallowed columns and installs the canonical copy."""

import csv
import os
import sys
import tempfile
from pathlib import Path
from typing import Iterable

import structlog
from pydantic import BaseModel, Field

from feedsync.errors import SanitizeError
from feedsync.utils.io import remove_quietly

log = structlog.stdlib.get_logger()

# Feed cells such as extDescription can exceed the csv module default of 128 KiB
FIELD_SIZE_LIMIT = min(sys.maxsize, 2**31 - 1)


class SanitizeResult(BaseModel):
    """Summary of one sanitized feed."""

    row_count: int = Field(default=0, ge=0, description="Data rows written (header excluded)")
    removed_fields: list[str] = Field(
        default_factory=list, description="Columns present in the payload and removed"
    )


class CsvSanitizer:
    """Rewrites raw CSV payloads without the disallowed columns.

    Output uses minimal quoting, so any value containing the delimiter, the
    quote character or a line break is quoted and re-parses to the same value.
    """

    def __init__(self, disallowed_fields: Iterable[str] = ("extDescription",), delimiter: str = ","):
        """
        Initialize the sanitizer.

        Args:
            disallowed_fields: Column names removed from every row
            delimiter: Field delimiter of both input and output
        """
        self._disallowed = frozenset(disallowed_fields)
        self._delimiter = delimiter

    def sanitize(self, raw_path: Path, canonical_path: Path) -> SanitizeResult:
        """
        Sanitize ``raw_path`` and atomically replace ``canonical_path``.

        The output is written to a fresh file next to the canonical path and
        swapped in only once the whole payload parsed cleanly, so a malformed
        payload never modifies the canonical copy.

        Args:
            raw_path: Downloaded payload
            canonical_path: Local mirror path of the feed

        Returns:
            SanitizeResult with row count and removed columns

        Raises:
            SanitizeError: If the payload is empty, not valid UTF-8 or not valid CSV
        """
        canonical_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=canonical_path.parent, prefix=f".{canonical_path.name}.", suffix=".tmp"
        )
        tmp_path = Path(tmp_name)

        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as out:
                result = self._rewrite(raw_path, out)
            os.replace(tmp_path, canonical_path)
        except (csv.Error, UnicodeDecodeError) as e:
            remove_quietly(tmp_path)
            raise SanitizeError(f"Malformed CSV in {raw_path.name}: {e}") from e
        except BaseException:
            remove_quietly(tmp_path)
            raise

        log.debug(
            "feed_sanitized",
            canonical_path=str(canonical_path),
            row_count=result.row_count,
            removed_fields=result.removed_fields,
        )
        return result

    def _rewrite(self, raw_path: Path, out) -> SanitizeResult:
        csv.field_size_limit(FIELD_SIZE_LIMIT)
        with open(raw_path, "r", encoding="utf-8-sig", newline="") as src:
            reader = csv.reader(src, delimiter=self._delimiter, strict=True)
            try:
                header = next(reader)
            except StopIteration:
                raise SanitizeError(f"Empty payload: {raw_path.name}") from None

            keep = [i for i, name in enumerate(header) if name not in self._disallowed]
            removed = [name for name in header if name in self._disallowed]

            writer = csv.writer(
                out,
                delimiter=self._delimiter,
                lineterminator="\r\n",
                quoting=csv.QUOTE_MINIMAL,
            )
            writer.writerow([header[i] for i in keep])

            row_count = 0
            for row in reader:
                if not row:
                    continue
                if len(row) > len(header):
                    raise SanitizeError(
                        f"Row {reader.line_num} of {raw_path.name} has {len(row)} fields, "
                        f"header has {len(header)}"
                    )
                # Missing trailing cells are stored as empty values
                row = row + [""] * (len(header) - len(row))
                writer.writerow([row[i] for i in keep])
                row_count += 1

        return SanitizeResult(row_count=row_count, removed_fields=removed)


def read_rows(path: Path, delimiter: str = ",") -> list[list[str]]:
    """Parse a sanitized feed back into rows, header first."""
    csv.field_size_limit(FIELD_SIZE_LIMIT)
    with open(path, "r", encoding="utf-8", newline="") as f:
        return [row for row in csv.reader(f, delimiter=delimiter, strict=True) if row]
