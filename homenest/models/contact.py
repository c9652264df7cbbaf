"""Contact, phone and email models."""

from typing import Annotated, Any, Optional
from pydantic import BaseModel, BeforeValidator, Field


def _null_to_false(value: Any) -> Any:
    # Store columns are nullable; a missing flag means "not set"
    return False if value is None else value


def _null_to_zero(value: Any) -> Any:
    return 0 if value is None else value


Flag = Annotated[bool, BeforeValidator(_null_to_false)]
Counter = Annotated[int, BeforeValidator(_null_to_zero)]


class Phone(BaseModel):
    """Phone number belonging to a contact."""
    id: str = Field(..., description="Phone ID")
    contact_id: str = Field(..., description="Owning contact ID")
    number: str = Field(..., description="Number as it appeared in the source")
    number_normalized: Optional[str] = Field(None, description="Digits only")
    type: Optional[str] = Field(None, description="mobile, landline, voip or unknown")
    is_dnc: Flag = Field(default=False, description="Do-not-call; never queued for calling")
    is_verified: Flag = False
    attempt_count: Counter = 0
    last_result: Optional[str] = None


class Email(BaseModel):
    """Email address belonging to a contact."""
    id: str = Field(..., description="Email ID")
    contact_id: str = Field(..., description="Owning contact ID")
    email: str = Field(..., description="Email address")
    is_verified: Flag = False


class Contact(BaseModel):
    """Person attached to a property (owner or MLS contact)."""
    id: str = Field(..., description="Contact ID")
    property_id: str = Field(..., description="Owning property ID")
    name: Optional[str] = Field(None, description="Full name")
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[str] = Field(None, description="owner or mls_contact")
    is_decision_maker: Flag = False
    priority: Optional[int] = None
    is_absentee_owner: Flag = False
    phones: list[Phone] = Field(default_factory=list)
    emails: list[Email] = Field(default_factory=list)

    def callable_phones(self) -> list[Phone]:
        """Phones that may be dialed."""
        return [phone for phone in self.phones if not phone.is_dnc]
