"""Normalize lead export rows into property, contact, phone and email records."""

import re
from datetime import datetime, timezone
from typing import Optional
from homenest.models.lead_import import ParsedContact, ParsedEmail, ParsedPhone, ParsedRow

DEFAULT_STATE = "CA"
DEFAULT_STATUS = "Expired"
MIN_PHONE_DIGITS = 7

# (phone column, status column); some phone columns have no status column
PHONE_COLUMNS: list[tuple[str, Optional[str]]] = [
    ("Phone", "Phone Status"),
    *[(f"Phone {n}", f"Phone {n} Status") for n in range(2, 10)],
    ("Phone 10", None),
    ("Phone 11", "Phone 11 Status"),
    ("Phone 12", None),
    ("Phone 13", "Phone 13 Status"),
    ("Phone 14", None),
    ("Phone 15", None),
]
NAME_COLUMNS = ["Name"] + [f"Name {n}" for n in range(2, 12)]
MLS_NAME_COLUMNS = ["MLS Name"] + [f"MLS Name {n}" for n in range(2, 5)]
EMAIL_COLUMNS = ["Email"] + [f"Email {n}" for n in range(2, 13)]
INSIGHTS_PREFIX = "Insights - "

# properties column -> (source column, kind)
PROPERTY_COLUMNS: dict[str, tuple[str, str]] = {
    "lead_status": ("Lead Status", "text"),
    "listing_status": ("Listing Status", "text"),
    "price": ("List Price", "int"),
    "dom": ("Days On Market", "int"),
    "beds": ("Bedrooms", "int"),
    "baths": ("Bathrooms", "decimal"),
    "property_type": ("Type", "text"),
    "sqft": ("Square Footage", "int"),
    "year_built": ("Year Built", "int"),
    "lot_size": ("Lot Size", "decimal"),
    "list_date": ("List Date", "date"),
    "expired_date": ("Expired Date", "date"),
    "withdrawn_date": ("Withdrawn Date", "date"),
    "auctioned_date": ("Auctioned Date", "date"),
    "lead_date": ("Lead Date", "date"),
    "status_date": ("Status Date", "date"),
    "last_sold_date": ("Last Sold Date", "date"),
    "listing_agent": ("Listing Agent", "text"),
    "listing_broker": ("Listing Broker", "text"),
    "listing_id": ("MLS/FSBO ID", "text"),
    "remarks": ("Remarks", "text"),
    "agent_remarks": ("Agent Remarks", "text"),
    "agent_phone": ("Agent Phone", "text"),
    "area": ("Area", "text"),
    "subdivision": ("Subdivision", "text"),
    "zoning": ("Zoning", "text"),
    "tax_id": ("Tax ID", "text"),
}

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_UNICODE_ESCAPE = re.compile(r"\\u([0-9a-fA-F]{4})")
_LONG_UNICODE_ESCAPE = re.compile(r"\\U[0-9a-fA-F]{8}")
_LEADING_INT = re.compile(r"^-?\d+")
_LEADING_DECIMAL = re.compile(r"^-?(?:\d+\.?\d*|\.\d+)")
_UNIT_DESIGNATOR = re.compile(r"(?:\b(?:apartment|apt|unit|suite|ste)\b\s*#?|#)\s*")


def sanitize_text(text: str) -> str:
    """Strip characters Postgres rejects as unsupported unicode escapes."""
    text = _CONTROL_CHARS.sub("", text)

    def _decode(match: re.Match) -> str:
        code = int(match.group(1), 16)
        return "" if code == 0 else chr(code)

    text = _UNICODE_ESCAPE.sub(_decode, text)
    text = _LONG_UNICODE_ESCAPE.sub("", text)
    return text.replace("\\", "/")


def trim_or_none(value: Optional[str]) -> Optional[str]:
    """Trimmed, sanitized text or None when blank."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    return sanitize_text(value)


def parse_integer(value: Optional[str]) -> Optional[int]:
    """Parse an integer after dropping everything but digits and minus signs."""
    if not value or not value.strip():
        return None
    match = _LEADING_INT.match(re.sub(r"[^0-9-]", "", value))
    return int(match.group(0)) if match else None


def parse_decimal(value: Optional[str]) -> Optional[float]:
    """Parse a decimal after dropping everything but digits, dots and minus signs."""
    if not value or not value.strip():
        return None
    match = _LEADING_DECIMAL.match(re.sub(r"[^0-9.-]", "", value))
    return float(match.group(0)) if match else None


def parse_export_date(value: Optional[str]) -> Optional[str]:
    """Convert MM-DD-YYYY to an ISO date string."""
    if not value or not value.strip():
        return None
    parts = value.strip().split("-")
    if len(parts) != 3:
        return None
    month, day, year = parts
    if not month or not day or len(year) != 4:
        return None
    return f"{year}-{month.zfill(2)}-{day.zfill(2)}"


def normalize_phone(phone: str) -> str:
    """Digits-only form of a phone number."""
    return re.sub(r"\D", "", phone or "")


def format_e164(phone: str) -> str:
    """Format a phone number in international form, assuming US for 10 digits."""
    digits = normalize_phone(phone)
    if len(digits) == 10:
        return f"+1{digits}"
    return f"+{digits}"


def normalize_address(street: str, city: str, state: str, zip_code: Optional[str]) -> str:
    """Build the de-duplication key for a property address.

    Unit designators are kept so two units at one street address stay distinct;
    apt, apartment, suite, ste and # all become "unit".
    """
    street_key = re.sub(r"[.,]", " ", street.lower())
    street_key = _UNIT_DESIGNATOR.sub("unit ", street_key)
    street_key = " ".join(street_key.split())
    city_key = " ".join(city.lower().split())
    return f"{street_key}, {city_key}, {state.lower()} {zip_code or ''}".strip()


def _parse_value(raw: Optional[str], kind: str):
    if kind == "int":
        return parse_integer(raw)
    if kind == "decimal":
        return parse_decimal(raw)
    if kind == "date":
        return parse_export_date(raw)
    return trim_or_none(raw)


def parse_contacts(row: dict[str, str], street_address: str) -> list[ParsedContact]:
    """Owner and MLS contacts in column order; the first owner is the decision maker."""
    contacts: list[ParsedContact] = []
    priority = 1

    for column in NAME_COLUMNS:
        name = trim_or_none(row.get(column))
        if not name:
            continue
        if column == "Name":
            mailing_street = trim_or_none(row.get("Mailing Street"))
            contacts.append(ParsedContact(
                name=name,
                first_name=trim_or_none(row.get("First Name")),
                last_name=trim_or_none(row.get("Last Name")),
                role="owner",
                is_decision_maker=True,
                priority=priority,
                mailing_street=mailing_street,
                mailing_city=trim_or_none(row.get("Mailing City")),
                mailing_state=trim_or_none(row.get("Mailing State")),
                mailing_zip=trim_or_none(row.get("Mailing Zip")),
                is_absentee_owner=bool(mailing_street) and mailing_street.lower() != street_address.lower(),
            ))
        else:
            contacts.append(ParsedContact(name=name, role="owner", priority=priority))
        priority += 1

    for column in MLS_NAME_COLUMNS:
        name = trim_or_none(row.get(column))
        if not name:
            continue
        contacts.append(ParsedContact(name=name, role="mls_contact", priority=priority))
        priority += 1

    return contacts


def parse_phones(row: dict[str, str]) -> list[ParsedPhone]:
    phones = []
    for phone_column, status_column in PHONE_COLUMNS:
        number = trim_or_none(row.get(phone_column))
        if not number:
            continue
        normalized = normalize_phone(number)
        if len(normalized) < MIN_PHONE_DIGITS:
            continue
        status = trim_or_none(row.get(status_column)) if status_column else None
        phones.append(ParsedPhone(
            number=number,
            number_normalized=normalized,
            is_dnc=(status or "").upper() == "DNC",
        ))
    return phones


def parse_emails(row: dict[str, str]) -> list[ParsedEmail]:
    emails = []
    for column in EMAIL_COLUMNS:
        value = trim_or_none(row.get(column))
        if value and "@" in value:
            emails.append(ParsedEmail(email=value.lower()))
    return emails


def parse_lead_row(
    row: dict[str, str],
    batch_id: str,
    import_source: str = "csv_vortex",
    default_state: str = DEFAULT_STATE,
) -> Optional[ParsedRow]:
    """Normalize one export row.

    Returns None when the row has no property address or city. Phones and emails
    attach to the decision maker; a placeholder "Owner" contact is created when a
    row carries channels but no named owner.
    """
    street_address = trim_or_none(row.get("Property Address"))
    city = trim_or_none(row.get("Property City"))
    if not street_address or not city:
        return None

    state = trim_or_none(row.get("Property State")) or default_state
    zip_code = trim_or_none(row.get("Property Zip"))
    source_id = trim_or_none(row.get("Vortex ID")) or re.sub(r"\s+", "_", f"gen_{street_address}_{city}")
    address_normalized = normalize_address(street_address, city, state, zip_code)

    insights = {}
    for key, value in row.items():
        if key.startswith(INSIGHTS_PREFIX) and value and value.strip():
            insights[key[len(INSIGHTS_PREFIX):]] = sanitize_text(value.strip())

    property_record = {
        "source_id": source_id,
        "street_address": street_address,
        "city": city,
        "state": state,
        "zip": zip_code,
        "address_normalized": address_normalized,
    }
    for column, (source_column, kind) in PROPERTY_COLUMNS.items():
        property_record[column] = _parse_value(row.get(source_column), kind)
    property_record.update({
        "status": property_record["listing_status"] or DEFAULT_STATUS,
        "insights": insights,
        "import_source": import_source,
        "import_date": datetime.now(timezone.utc).isoformat(),
        "import_batch_id": batch_id,
    })

    contacts = parse_contacts(row, street_address)
    phones = parse_phones(row)
    emails = parse_emails(row)

    owner = next((contact for contact in contacts if contact.is_decision_maker), None)
    if owner is None and (phones or emails):
        owner = ParsedContact(name="Owner", role="owner", is_decision_maker=True, priority=len(contacts) + 1)
        contacts.append(owner)
    if owner is not None:
        owner.phones = phones
        owner.emails = emails

    return ParsedRow(address_normalized=address_normalized, property_record=property_record, contacts=contacts)
