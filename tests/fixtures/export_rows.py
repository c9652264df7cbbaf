"""Lead export row fixtures."""

from typing import Dict


def owner_row(address: str = "123 Main St", city: str = "Pasadena", **overrides: str) -> Dict[str, str]:
    """Export row with one owner, two phones (one DNC) and two emails."""
    row = {
        "Vortex ID": "VX-1001",
        "Lead Status": "Expired",
        "Listing Status": "Expired",
        "Property Address": address,
        "Property City": city,
        "Property State": "CA",
        "Property Zip": "91101",
        "List Price": "$1,250,000",
        "Days On Market": "94",
        "Bedrooms": "3",
        "Bathrooms": "2.5",
        "Square Footage": "1,850",
        "Year Built": "1962",
        "Lot Size": "0.18 acres",
        "List Date": "3-5-2024",
        "Expired Date": "09-05-2024",
        "MLS/FSBO ID": "AR24012345",
        "Type": "Single Family",
        "Remarks": "Charming mid-century home",
        "Name": "Jane Q Homeowner",
        "First Name": "Jane",
        "Last Name": "Homeowner",
        "Mailing Street": "55 Other Rd",
        "Mailing City": "Glendale",
        "Mailing State": "CA",
        "Mailing Zip": "91201",
        "Name 2": "John Homeowner",
        "MLS Name": "Listing Agent Pat",
        "Phone": "(626) 555-0101",
        "Phone Status": "",
        "Phone 2": "626.555.0102",
        "Phone 2 Status": "dnc",
        "Email": "Jane@Example.com",
        "Email 2": "not-an-email",
        "Email 3": "jane.alt@example.com",
        "Insights - Estimated Equity": "$600,000",
        "Insights - Marital Status": "Married",
    }
    row.update(overrides)
    return row


def minimal_row(address: str, city: str = "Pasadena", **overrides: str) -> Dict[str, str]:
    """Export row with only the required columns."""
    row = {"Property Address": address, "Property City": city}
    row.update(overrides)
    return row
