"""
Merge AI validation results back onto the original address records.

The AI echoes the address text rather than any id, and its output order is
not guaranteed, so the join key is the address string compared
case-insensitively (the service likes to normalize capitalization).

Every record comes out VALIDATED or ERROR; nothing is left PROCESSING.
Records are copied, never mutated.

Known limitation: two rows with the same address text both bind to the
first matching result.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from .models import AddressRecord, AddressStatus, ValidationResult

NOT_VALIDATED_MESSAGE = "Address could not be validated."
NOT_FOUND_MESSAGE = "Address not found in AI response."


def reconcile(
    records: Sequence[AddressRecord], results: Iterable[ValidationResult]
) -> list[AddressRecord]:
    """Resolve each record against the first result with the same address."""
    by_address: dict[str, ValidationResult] = {}
    for result in results:
        by_address.setdefault(result.original_address.lower(), result)

    return [_resolve(record, by_address.get(record.full_address.lower())) for record in records]


def _resolve(record: AddressRecord, match: ValidationResult | None) -> AddressRecord:
    if match is None:
        return record.model_copy(
            update={"status": AddressStatus.ERROR, "error": NOT_FOUND_MESSAGE}
        )

    if not match.is_valid:
        return record.model_copy(
            update={
                "status": AddressStatus.ERROR,
                "error": match.error or NOT_VALIDATED_MESSAGE,
            }
        )

    return record.model_copy(
        update={
            "house_number": match.house_number,
            "street_name": match.street_name,
            "city": match.city,
            "state": match.state,
            "zip": match.zip,
            "status": AddressStatus.VALIDATED,
            "error": None,
        }
    )
