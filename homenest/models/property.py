"""Property and CRM lead models."""

from typing import Annotated, Any, Optional
from pydantic import BaseModel, BeforeValidator, Field


def _null_to_empty(value: Any) -> Any:
    return {} if value is None else value


def _whole_number(value: Any) -> Any:
    # numeric columns may come back fractional, e.g. 649000.5
    if isinstance(value, float):
        return round(value)
    return value


Insights = Annotated[dict[str, str], BeforeValidator(_null_to_empty)]
WholeNumber = Annotated[Optional[int], BeforeValidator(_whole_number)]


class Property(BaseModel):
    """Real estate property imported from a lead export."""
    id: str = Field(..., description="Property ID (uuid)")
    source_id: Optional[str] = Field(None, description="Identifier from the source export")
    address_normalized: str = Field(..., description="De-duplication key, unique per import source")
    street_address: str = Field(..., description="Street address")
    city: str = Field(..., description="City")
    state: Optional[str] = None
    zip: Optional[str] = None
    price: WholeNumber = Field(None, description="List price")
    sqft: WholeNumber = None
    beds: WholeNumber = None
    baths: Optional[float] = None
    year_built: WholeNumber = None
    lot_size: Optional[float] = None
    listing_id: Optional[str] = Field(None, description="MLS/FSBO listing ID")
    list_date: Optional[str] = None
    dom: WholeNumber = Field(None, description="Days on market")
    status: Optional[str] = None
    lead_status: Optional[str] = Field(None, description="Distress/lead code from the export, e.g. Expired")
    listing_status: Optional[str] = None
    property_type: Optional[str] = None
    remarks: Optional[str] = None
    insights: Insights = Field(default_factory=dict, description="Enrichment columns keyed by label")
    import_source: Optional[str] = None
    import_batch_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class CrmLead(BaseModel):
    """CRM lead pointing at the property an operator works."""
    id: str = Field(..., description="CRM lead ID")
    property_id: Optional[str] = Field(None, description="Owning property ID")
    last_activity_date: Optional[str] = None
