"""
Pydantic models for address data — strict typing at every boundary.

Two families live here:
  - AddressRecord: the trusted, in-session representation of one spreadsheet row.
  - ValidationResult / RouteResult: untrusted AI output, decoded against the
    exact wire schema (camelCase aliases) and discarded after reconciliation.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt


# ─── Address Lifecycle ───────────────────────────────────────────────


class AddressStatus(str, Enum):
    """Lifecycle state of an address record."""

    UNPROCESSED = "UNPROCESSED"
    PROCESSING = "PROCESSING"  # Sent to the AI, awaiting reconciliation
    VALIDATED = "VALIDATED"  # Terminal
    ERROR = "ERROR"  # Terminal


# ─── Ingested Rows ───────────────────────────────────────────────────


class ParsedRow(BaseModel):
    """One spreadsheet row that produced a non-empty address."""

    original_data: dict[str, Any] = Field(default_factory=dict)
    full_address: str = Field(min_length=1)


class AddressRecord(BaseModel):
    """One address and its validation state.

    ``original_data`` is carried verbatim for export and never interpreted.
    ``full_address`` is the join key used when reconciling AI output.
    """

    id: int
    original_data: dict[str, Any] = Field(default_factory=dict)
    full_address: str = Field(min_length=1)
    house_number: Optional[str] = None
    street_name: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    status: AddressStatus = AddressStatus.PROCESSING
    error: Optional[str] = None  # Set iff status == ERROR

    @property
    def is_validated(self) -> bool:
        return self.status == AddressStatus.VALIDATED

    def single_line(self) -> str:
        """Structured fields joined the way the route request expects them."""
        return (
            f"{self.house_number} {self.street_name}, "
            f"{self.city}, {self.state} {self.zip}"
        )


# ─── AI Wire Models ──────────────────────────────────────────────────


class _WireModel(BaseModel):
    """Base for models decoded from AI output (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True)


class ValidationResult(_WireModel):
    """One decoded item of the validation response."""

    original_address: str = Field(alias="originalAddress")
    house_number: str = Field(alias="houseNumber")
    street_name: str = Field(alias="streetName")
    city: str
    state: str
    zip: str
    is_valid: bool = Field(alias="isValid")
    error: Optional[str] = None


class RouteStop(_WireModel):
    """A reference into the known address set; ``address`` is echoed but unused.

    ``id`` is a JSON number and optional on the wire; stops whose id does not
    resolve to a known record are dropped during route reconciliation.
    """

    id: Union[StrictInt, StrictFloat, None] = None
    address: Optional[str] = None


class RouteResult(_WireModel):
    """Decoded route response: stops in visiting order."""

    optimized_route: list[RouteStop] = Field(alias="optimizedRoute")
