# Overview: Pure device-identifier rules; format, batch uniqueness, cross-product conflicts, sold status.

"""
Device Identifier Service

A device identifier is a 15-digit hardware serial (IMEI). Within a store an
identifier may be listed on at most one product.

VALIDATION ORDER (all run before any write, any failure aborts the batch):
1. Format: every candidate is exactly 15 ASCII digits
2. Batch duplicates: no identifier appears twice in the submitted set
3. Conflicts: no identifier is already listed on another product

Errors name every offending value so the caller can show which ones to fix.
"""

from __future__ import annotations

import re
from typing import AbstractSet, Iterable

from ..validation import ConflictError, ValidationError


DEVICE_ID_LENGTH = 15
DEVICE_ID_PATTERN = re.compile(r"[0-9]{15}")


def is_valid_device_id(value) -> bool:
    return isinstance(value, str) and DEVICE_ID_PATTERN.fullmatch(value) is not None


def normalize_device_ids(raw) -> list[str]:
    """
    Turn submitted identifiers into a clean list.

    Accepts a list of strings or a comma-delimited string (older clients and
    imports). Entries are trimmed, blanks dropped, order preserved. Duplicates
    are kept so validate_device_id_set can report them.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        parts = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        parts = raw
    else:
        raise ValidationError("device_ids must be a list of strings", code="INVALID_FIELD", values=["device_ids"])

    cleaned = []
    for part in parts:
        if part is None:
            continue
        if not isinstance(part, str):
            # Numbers lose leading zeros; make the caller send strings.
            raise ValidationError(
                "Device IDs must be sent as strings",
                code="INVALID_DEVICE_ID",
                values=[str(part)],
            )
        text = part.strip()
        if text:
            cleaned.append(text)
    return cleaned


def find_invalid(candidates: Iterable[str]) -> list[str]:
    return [c for c in candidates if not is_valid_device_id(c)]


def find_duplicates(candidates: Iterable[str]) -> list[str]:
    """Identifiers appearing more than once, in first-repeat order."""
    seen: set[str] = set()
    dupes: list[str] = []
    for c in candidates:
        if c in seen and c not in dupes:
            dupes.append(c)
        seen.add(c)
    return dupes


def validate_device_id_set(candidates: Iterable[str], existing_outside_product: AbstractSet[str]) -> list[str]:
    """
    Validate a full replacement set of identifiers for one product (or the
    union of a batch of new products).

    Returns the candidates unchanged when valid.

    Raises:
        ValidationError INVALID_DEVICE_ID: format violations
        ValidationError DUPLICATE_DEVICE_ID: repeated within the submission
        ConflictError DEVICE_ID_CONFLICT: already on another product
    """
    ids = list(candidates)

    invalid = find_invalid(ids)
    if invalid:
        raise ValidationError(
            f"Invalid device IDs: {', '.join(invalid)}. Must be {DEVICE_ID_LENGTH}-digit numbers.",
            code="INVALID_DEVICE_ID",
            values=invalid,
        )

    dupes = find_duplicates(ids)
    if dupes:
        raise ValidationError(
            f"Duplicate device IDs in submission: {', '.join(dupes)}",
            code="DUPLICATE_DEVICE_ID",
            values=dupes,
        )

    conflicts = [c for c in ids if c in existing_outside_product]
    if conflicts:
        raise ConflictError(
            f"Device IDs already exist in other products: {', '.join(conflicts)}",
            code="DEVICE_ID_CONFLICT",
            values=conflicts,
        )

    return ids


def classify_sold_status(device_ids: Iterable[str], sold_ids: Iterable[str]) -> set[str]:
    """Device ids with an exact (trimmed) match in the sale records."""
    sold = {s.strip() for s in sold_ids if s}
    return {d.strip() for d in device_ids if d and d.strip() in sold}


def partition_devices(device_ids: Iterable[str], sold_ids: Iterable[str]) -> tuple[list[str], list[str]]:
    """Split device_ids into (sold, available), preserving input order."""
    ids = [d.strip() for d in device_ids if d and d.strip()]
    sold = classify_sold_status(ids, sold_ids)
    return [d for d in ids if d in sold], [d for d in ids if d not in sold]
