from __future__ import annotations

import io
from typing import Any

import pandas as pd

from ..config.entities import EntityFieldConfig
from ..models.candidate import EntityKind

"""Import template workbooks.

One header per field (its preferred spreadsheet header, which the alias table
always recognizes) and one sample row, so users start from a sheet the
importer is known to accept.
"""

__all__ = [
    "SAMPLE_VALUES",
    "template_headers",
    "write_template",
]

SAMPLE_VALUES: dict[EntityKind, dict[str, Any]] = {
    EntityKind.LEAD: {
        "name": "John Doe",
        "phone": "9876543210",
        "email": "john@example.com",
        "source": "Website",
        "budget": "5000000",
        "preferred_location": "Sangli",
        "stage": "New",
        "next_follow_up": "17-11-2025 12:30",
        "comments": "Sample comment",
    },
    EntityKind.PROPERTY: {
        "title": "3BHK Apartment",
        "type": "Residential",
        "location": "Sangli Main Road",
        "address": "Sunshine Apartments",
        "price": "7500000",
        "area": "1500",
        "built_up_area": "1400",
        "carpet_area": "1300",
        "owner_name": "Owner Name",
        "owner_phone": "9876543210",
    },
    EntityKind.OWNER: {
        "name": "Property Owner",
        "phone": "9876543210",
        "email": "owner@example.com",
        "address": "123 Main Street, Sangli",
    },
    EntityKind.CLIENT: {
        "name": "Client Name",
        "phone": "9876543210",
        "email": "client@example.com",
    },
}


def template_headers(config: EntityFieldConfig) -> list[str]:
    return [spec.aliases[0] if spec.aliases else spec.name for spec in config.fields]


def write_template(config: EntityFieldConfig) -> bytes:
    """Return an .xlsx workbook (one sheet named after the entity) as bytes."""
    samples = SAMPLE_VALUES.get(config.kind, {})
    headers = template_headers(config)
    row = [samples.get(spec.name) for spec in config.fields]
    frame = pd.DataFrame([row], columns=headers)
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name=config.kind.value, index=False)
    return buf.getvalue()
