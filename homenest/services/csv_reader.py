"""Split CSV text into header-mapped rows."""

import csv
import io


def read_csv_rows(text: str) -> list[dict[str, str]]:
    """Parse CSV text whose first record is the header row.

    Blank lines are skipped, a leading UTF-8 BOM is dropped and header cells are
    trimmed. Short records are padded with empty strings; extra cells are dropped.
    """
    if not text:
        return []

    text = text.lstrip("\ufeff")
    reader = csv.reader(io.StringIO(text, newline=""))

    header: list[str] = []
    rows: list[dict[str, str]] = []
    for record in reader:
        if not record or all(not cell.strip() for cell in record):
            continue
        if not header:
            header = [cell.strip() for cell in record]
            continue
        cells = record[:len(header)] + [""] * (len(header) - len(record))
        rows.append(dict(zip(header, cells)))

    return rows
