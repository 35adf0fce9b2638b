from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from ..mapping.coercion import FieldType
from ..models.candidate import EntityKind

"""Per-entity field configuration: alias tables, required fields, dedup keys.

These are plain values handed to the pipeline at construction time. Callers
that need different aliases build a new config (see ``with_extra_aliases``)
instead of mutating the defaults.

Alias lists below come from the headers real brokerage exports use
(PropertyName, CustomerMobile, SuperAreaName, ...) plus the human-typed
variants of the import templates.
"""

__all__ = [
    "FieldSpec",
    "OwnerLink",
    "EntityFieldConfig",
    "DEFAULT_ENTITY_CONFIGS",
    "LEAD_CONFIG",
    "PROPERTY_CONFIG",
    "OWNER_CONFIG",
    "CLIENT_CONFIG",
]


@dataclass(frozen=True)
class FieldSpec:
    name: str  # canonical field name (= column name)
    field_type: FieldType = FieldType.STRING
    aliases: tuple[str, ...] = ()
    # 値が無い場合に他フィールドの値を流用 (area <- built_up_area <- carpet_area)
    fallback_from: tuple[str, ...] = ()
    persisted: bool = True  # False: relationship helper fields (owner_name, ...)

    @property
    def variants(self) -> tuple[str, ...]:
        """Accepted header variants, canonical name first."""
        if self.name in self.aliases:
            return self.aliases
        return (self.name, *self.aliases)


@dataclass(frozen=True)
class OwnerLink:
    """Property -> owner relationship carried as owner name/phone columns."""
    name_field: str
    phone_field: str
    target_field: str  # FK column on the importing entity
    target_kind: EntityKind = EntityKind.OWNER


@dataclass(frozen=True)
class EntityFieldConfig:
    kind: EntityKind
    table: str
    fields: tuple[FieldSpec, ...]
    required: tuple[str, ...]
    # 順序付き。各キーは複合キー可 (title + location)
    dedup_keys: tuple[tuple[str, ...], ...]
    insert_defaults: Mapping[str, Any] = field(default_factory=dict)
    owner_link: OwnerLink | None = None

    @property
    def alias_table(self) -> dict[str, tuple[str, ...]]:
        return {f.name: f.variants for f in self.fields}

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def spec_for(self, name: str) -> FieldSpec:
        for f in self.fields:
            if f.name == name:
                return f
        raise KeyError(name)

    def with_extra_aliases(self, extra: Mapping[str, Sequence[str]]) -> EntityFieldConfig:
        """Return a copy whose fields accept additional header variants."""
        unknown = set(extra) - set(self.field_names)
        if unknown:
            raise KeyError(f"unknown {self.kind.value} fields: {sorted(unknown)}")
        fields = tuple(
            replace(f, aliases=f.aliases + tuple(a for a in extra[f.name] if a not in f.aliases))
            if f.name in extra
            else f
            for f in self.fields
        )
        return replace(self, fields=fields)

    def with_table(self, table: str) -> EntityFieldConfig:
        return replace(self, table=table)


_S = FieldType.STRING
_D = FieldType.DECIMAL
_T = FieldType.DATETIME

LEAD_CONFIG = EntityFieldConfig(
    kind=EntityKind.LEAD,
    table="leads",
    fields=(
        FieldSpec("name", _S, ("Name", "Full Name", "Lead Name")),
        FieldSpec("phone", _S, ("Phone", "Mobile", "Phone Number", "Contact")),
        FieldSpec("email", _S, ("Email", "E-mail", "Email Address")),
        FieldSpec("source", _S, ("Source", "Lead Source")),
        FieldSpec("budget", _D, ("Budget",)),
        FieldSpec("preferred_location", _S, ("Preferred Location", "preferredLocation", "Location")),
        FieldSpec("stage", _S, ("Stage", "Lead Stage")),
        FieldSpec("assigned_to", _S, ("Assigned To", "assignedTo")),
        FieldSpec(
            "next_follow_up",
            _T,
            (
                "next follow up",
                "next follow-up",
                "next followup",
                "next follow up date",
                "next followup date",
                "next follow-up date",
            ),
        ),
        FieldSpec("lead_creation_date", _T, ("Lead Creation Date", "Created On", "Lead Date")),
        FieldSpec("comments", _S, ("comments", "comment", "comments/remark", "remarks", "remark")),
    ),
    required=("name", "phone", "source"),
    dedup_keys=(("email",), ("phone",)),
    insert_defaults={"stage": "New"},
)

PROPERTY_CONFIG = EntityFieldConfig(
    kind=EntityKind.PROPERTY,
    table="properties",
    fields=(
        FieldSpec("title", _S, ("PropertyName", "Title", "Property Name")),
        FieldSpec("type", _S, ("PropertyTypeName", "Type", "Property Type")),
        FieldSpec("location", _S, ("LocationName", "CityName", "Location", "City")),
        FieldSpec("address", _S, ("AddressName", "BuildingName", "Address", "Building Name")),
        FieldSpec("price", _D, ("ExpectedPrice", "Price", "Expected Price")),
        FieldSpec("built_up_area", _D, ("BuiltAreaName", "Built Area", "Built Up Area")),
        FieldSpec("carpet_area", _D, ("CarpetAreaName", "Carpet Area")),
        FieldSpec(
            "area",
            _D,
            ("SuperAreaName", "Super Area", "Area", "Area (sqft)"),
            fallback_from=("built_up_area", "carpet_area"),
        ),
        FieldSpec("status", _S, ("Status",)),
        FieldSpec("transaction_type", _S, ("TransactionType", "Transaction Type", "Rent/Sell")),
        FieldSpec("description", _S, ("Description",)),
        FieldSpec("latitude", _D, ("Latitude", "Lat")),
        FieldSpec("longitude", _D, ("Longitude", "Lng", "Long")),
        FieldSpec("code_no", _S, ("CodeNo", "Code No", "Property Code")),
        FieldSpec("bedrooms", _S, ("Bedrooms", "BHK")),
        FieldSpec("furnishing_status", _S, ("FurnishingStatus", "Furnishing Status", "Furnishing")),
        FieldSpec("agreement_start_date", _T, ("Agreement Start Date", "AgreementStartDate")),
        FieldSpec("agreement_end_date", _T, ("Agreement End Date", "AgreementEndDate")),
        FieldSpec("owner_name", _S, ("CustomerFullName", "Owner Name"), persisted=False),
        FieldSpec("owner_phone", _S, ("CustomerMobile", "Owner Phone", "Owner Mobile"), persisted=False),
    ),
    required=("title", "location"),
    dedup_keys=(("code_no",), ("title", "location")),
    insert_defaults={"type": "Residential", "status": "Available"},
    owner_link=OwnerLink(name_field="owner_name", phone_field="owner_phone", target_field="owner_id"),
)

OWNER_CONFIG = EntityFieldConfig(
    kind=EntityKind.OWNER,
    table="owners",
    fields=(
        FieldSpec("name", _S, ("Name", "Owner Name", "Full Name")),
        FieldSpec("phone", _S, ("Phone", "Mobile", "Phone Number")),
        FieldSpec("email", _S, ("Email", "E-mail")),
        FieldSpec("address", _S, ("Address",)),
        FieldSpec("agreed_for_commission", _S, ("Agreed For Commission", "Commission")),
    ),
    required=("name", "phone"),
    dedup_keys=(("email",), ("phone",)),
)

CLIENT_CONFIG = EntityFieldConfig(
    kind=EntityKind.CLIENT,
    table="clients",
    fields=(
        FieldSpec("name", _S, ("FullName", "Full Name", "Name")),
        FieldSpec("phone", _S, ("Mobile", "Phone", "Phone Number")),
        FieldSpec("email", _S, ("Email", "E-mail")),
        FieldSpec("linked_lead_id", _S, ("Linked Lead ID", "linkedLeadId")),
        FieldSpec("linked_property_id", _S, ("Linked Property ID", "linkedPropertyId")),
    ),
    required=("name", "phone"),
    dedup_keys=(("email",), ("phone",)),
)

DEFAULT_ENTITY_CONFIGS: dict[EntityKind, EntityFieldConfig] = {
    c.kind: c for c in (LEAD_CONFIG, PROPERTY_CONFIG, OWNER_CONFIG, CLIENT_CONFIG)
}
