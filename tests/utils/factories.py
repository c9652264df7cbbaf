"""Test data factories using Faker."""

from faker import Faker
from typing import Optional

fake = Faker()


def create_export_row(
    address: Optional[str] = None,
    city: Optional[str] = None,
    phones: Optional[list[tuple[str, str]]] = None,
    emails: Optional[list[str]] = None,
    **overrides: str,
) -> dict:
    """Create a lead export row keyed by the export's column headers.

    phones is a list of (number, status) pairs written to Phone, Phone 2, ...
    """
    address = address or fake.street_address()
    row = {
        "Vortex ID": fake.bothify("VX-########"),
        "Lead Status": "Expired",
        "Listing Status": "Expired",
        "Property Address": address,
        "Property City": city or fake.city(),
        "Property State": "CA",
        "Property Zip": fake.postcode(),
        "List Price": str(fake.random_int(min=300000, max=2500000)),
        "Days On Market": str(fake.random_int(min=1, max=365)),
        "Bedrooms": str(fake.random_int(min=1, max=6)),
        "Bathrooms": "2.5",
        "Square Footage": str(fake.random_int(min=800, max=5000)),
        "Year Built": str(fake.random_int(min=1920, max=2022)),
        "List Date": "03-15-2024",
        "Name": fake.name(),
        "First Name": fake.first_name(),
        "Last Name": fake.last_name(),
        "Mailing Street": address,
        "Mailing City": city or "",
        "Insights - Estimated Equity": "$412,000",
        "Insights - Estimated Age": "58",
    }
    if phones is None:
        phones = [(fake.numerify("(###) ###-####"), "")]
    for index, (number, status) in enumerate(phones, start=1):
        suffix = "" if index == 1 else f" {index}"
        row[f"Phone{suffix}"] = number
        if status:
            row[f"Phone{suffix} Status"] = status
    if emails is None:
        emails = [fake.email()]
    for index, email in enumerate(emails, start=1):
        suffix = "" if index == 1 else f" {index}"
        row[f"Email{suffix}"] = email
    row.update(overrides)
    return row


def create_property_data(**overrides) -> dict:
    """Create a properties table row."""
    data = {
        "source_id": fake.bothify("VX-########"),
        "street_address": fake.street_address(),
        "city": fake.city(),
        "state": "CA",
        "zip": fake.postcode(),
        "price": fake.random_int(min=300000, max=2500000),
        "dom": fake.random_int(min=1, max=365),
        "beds": 3,
        "baths": 2.0,
        "sqft": 1800,
        "insights": {"Estimated Equity": "$412,000", "Marital Status": "Married"},
        "import_source": "csv_vortex",
    }
    data["address_normalized"] = f"{data['street_address'].lower()}, {data['city'].lower()}, ca {data['zip']}"
    data.update(overrides)
    return data


def seed_lead(
    db,
    phones: Optional[list[dict]] = None,
    emails: Optional[list[str]] = None,
    contact_overrides: Optional[dict] = None,
    property_overrides: Optional[dict] = None,
) -> dict:
    """Seed a property with one contact, its phones and emails, and a CRM lead.

    Returns the seeded ids.
    """
    prop = db.seed("properties", [create_property_data(**(property_overrides or {}))])[0]
    contact = db.seed("contacts", [{
        "property_id": prop["id"],
        "name": fake.name(),
        "role": "owner",
        "is_decision_maker": True,
        "priority": 1,
        **(contact_overrides or {}),
    }])[0]
    phone_rows = db.seed("phones", [
        {"contact_id": contact["id"], "number": p["number"], "number_normalized": p["number"], "is_dnc": p.get("is_dnc", False)}
        for p in (phones or [])
    ])
    email_rows = db.seed("emails", [{"contact_id": contact["id"], "email": e} for e in (emails or [])])
    lead = db.seed("crm_leads", [{"property_id": prop["id"]}])[0]
    return {
        "lead_id": lead["id"],
        "property_id": prop["id"],
        "contact_id": contact["id"],
        "phone_ids": [p["id"] for p in phone_rows],
        "email_ids": [e["id"] for e in email_rows],
    }


def create_call_queue_item(queue_number: int = 1, position: int = 1, **overrides) -> dict:
    """Create a call_queue row."""
    data = {
        "queue_number": queue_number,
        "position": position,
        "status": "queued",
        "phone_number": fake.numerify("(###) ###-####"),
        "contact_name": fake.name(),
        "property_address": fake.street_address(),
        "property_city": fake.city(),
        "property_price": 750000,
        "property_dom": 45,
        "attempt_count": 0,
    }
    data.update(overrides)
    return data


def create_email_queue_item(queue_number: int = 1, position: int = 1, **overrides) -> dict:
    """Create an email_queue row."""
    data = {
        "queue_number": queue_number,
        "position": position,
        "status": "queued",
        "contact_email": fake.email(),
        "contact_name": fake.name(),
        "property_address": fake.street_address(),
        "property_city": fake.city(),
        "attempt_count": 0,
    }
    data.update(overrides)
    return data
