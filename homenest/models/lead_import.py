"""Models for CSV lead import: parsed rows, preview statistics, progress and results."""

from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field


class ImportMode(str, Enum):
    """How an import treats existing lead data."""
    APPEND = "append"
    REPLACE = "replace"


class ImportPhase(str, Enum):
    """Phase reported to progress callbacks."""
    CHECKING = "checking"
    CLEARING = "clearing"
    IMPORTING = "importing"
    DONE = "done"
    ERROR = "error"


class ParsedPhone(BaseModel):
    """Phone extracted from a source row."""
    number: str
    number_normalized: str = Field(..., description="Digits only")
    type: str = "unknown"
    is_dnc: bool = False


class ParsedEmail(BaseModel):
    """Email extracted from a source row."""
    email: str


class ParsedContact(BaseModel):
    """Contact extracted from a source row, with its channels."""
    name: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str = "owner"
    is_decision_maker: bool = False
    priority: int = 1
    mailing_street: Optional[str] = None
    mailing_city: Optional[str] = None
    mailing_state: Optional[str] = None
    mailing_zip: Optional[str] = None
    is_absentee_owner: bool = False
    phones: list[ParsedPhone] = Field(default_factory=list)
    emails: list[ParsedEmail] = Field(default_factory=list)


class ParsedRow(BaseModel):
    """One source row normalized into a property record and its contacts."""
    address_normalized: str = Field(..., description="De-duplication key")
    property_record: dict[str, Any] = Field(..., description="Column values for the properties table")
    contacts: list[ParsedContact] = Field(default_factory=list)

    @property
    def phones(self) -> list[ParsedPhone]:
        return [phone for contact in self.contacts for phone in contact.phones]

    @property
    def emails(self) -> list[ParsedEmail]:
        return [email for contact in self.contacts for email in contact.emails]


class PriceRange(BaseModel):
    min: int = 0
    max: int = 0


class ImportPreview(BaseModel):
    """Read-only statistics over a set of rows."""
    total_rows: int = 0
    total_contacts: int = 0
    total_phones: int = 0
    callable_phones: int = 0
    dnc_phones: int = 0
    total_emails: int = 0
    cities: dict[str, int] = Field(default_factory=dict, description="City name to row count")
    price_range: PriceRange = Field(default_factory=PriceRange)
    sample_addresses: list[str] = Field(default_factory=list)

    def top_cities(self, n: int = 5) -> list[tuple[str, int]]:
        """Cities with the most rows, ties broken by name."""
        return sorted(self.cities.items(), key=lambda item: (-item[1], item[0]))[:n]


class ImportProgress(BaseModel):
    """Snapshot passed to the progress callback."""
    phase: ImportPhase
    current: int = 0
    total: int = 0
    properties_imported: int = 0
    contacts_created: int = 0
    phones_created: int = 0
    emails_created: int = 0
    duplicates_skipped: int = 0
    errors: int = 0


class ImportResult(BaseModel):
    """Outcome of an import run."""
    success: bool = True
    batch_id: str
    properties_imported: int = 0
    contacts_created: int = 0
    phones_created: int = 0
    callable_phones: int = 0
    dnc_phones: int = 0
    emails_created: int = 0
    duplicates_skipped: int = 0
    errors: int = 0
    error_messages: list[str] = Field(default_factory=list)
