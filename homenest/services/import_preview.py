"""Preview statistics for a set of export rows, computed without touching the store."""

from homenest.models.lead_import import ImportPreview, PriceRange
from homenest.services.lead_parser import (
    MLS_NAME_COLUMNS,
    NAME_COLUMNS,
    parse_emails,
    parse_integer,
    parse_phones,
)
from homenest.utils.logging import timed

MAX_SAMPLE_ADDRESSES = 5


@timed("import_preview")
def generate_preview(rows: list[dict[str, str]]) -> ImportPreview:
    """Aggregate counts, city breakdown and price range over raw rows.

    Prices that are absent, unparsable or not positive are left out of the range.
    """
    preview = ImportPreview(total_rows=len(rows))
    min_price = None
    max_price = None

    for row in rows:
        city = (row.get("Property City") or "").strip()
        if city:
            preview.cities[city] = preview.cities.get(city, 0) + 1

        if len(preview.sample_addresses) < MAX_SAMPLE_ADDRESSES:
            address = (row.get("Property Address") or "").strip()
            if address:
                preview.sample_addresses.append(f"{address}, {city}")

        price = parse_integer(row.get("List Price"))
        if price is not None and price > 0:
            min_price = price if min_price is None else min(min_price, price)
            max_price = price if max_price is None else max(max_price, price)

        phones = parse_phones(row)
        for phone in phones:
            preview.total_phones += 1
            if phone.is_dnc:
                preview.dnc_phones += 1
            else:
                preview.callable_phones += 1

        emails = parse_emails(row)
        preview.total_emails += len(emails)
        preview.total_contacts += sum(
            1 for column in NAME_COLUMNS + MLS_NAME_COLUMNS if (row.get(column) or "").strip()
        )
        # the import adds a placeholder owner to carry channels when Name is empty
        if (phones or emails) and not (row.get("Name") or "").strip():
            preview.total_contacts += 1

    if min_price is not None:
        preview.price_range = PriceRange(min=min_price, max=max_price)

    return preview
