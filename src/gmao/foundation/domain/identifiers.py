"""Identifier value objects for type-safe entity references.

The deletion engine only ever targets three kinds of records. They form a
closed set so every dispatch over them can be exhaustive.

Example:
    >>> from gmao.foundation.domain import EntityRef, EntityType
    >>> ref = EntityRef(EntityType.EQUIPMENT, "eq-1")
    >>> str(ref)
    'equipment:eq-1'
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import assert_never

from gmao.foundation.domain.exceptions import ValidationError


class EntityType(StrEnum):
    """Kinds of records the deletion engine can target.

    Uses StrEnum for native JSON serialization.
    """

    EQUIPMENT = "equipment"
    DOCUMENT = "document"
    PART = "part"

    @classmethod
    def parse(cls, value: str) -> EntityType:
        """Parse a user-supplied entity type.

        Args:
            value: Case-insensitive entity type name.

        Returns:
            The matching EntityType.

        Raises:
            ValidationError: If the value is not a known entity type.
        """
        try:
            return cls(value.strip().lower())
        except ValueError as exc:
            raise ValidationError(
                "entity_type",
                f"Unknown entity type {value!r}",
                allowed=[member.value for member in cls],
            ) from exc

    @property
    def label(self) -> str:
        """French display label used in operator-facing messages."""
        match self:
            case EntityType.EQUIPMENT:
                return "équipement"
            case EntityType.DOCUMENT:
                return "document"
            case EntityType.PART:
                return "pièce"
            case _:
                assert_never(self)

    @property
    def demonstrative(self) -> str:
        """French demonstrative with the right gender ("Ce document", "Cette pièce")."""
        match self:
            case EntityType.EQUIPMENT:
                return f"Cet {self.label}"
            case EntityType.DOCUMENT:
                return f"Ce {self.label}"
            case EntityType.PART:
                return f"Cette {self.label}"
            case _:
                assert_never(self)

    @property
    def is_shared_resource(self) -> bool:
        """True for kinds that can be shared across equipment through groups."""
        return self is not EntityType.EQUIPMENT


@dataclass(frozen=True, slots=True)
class EntityRef:
    """Reference to one deletable record.

    Attributes:
        entity_type: Kind of record.
        entity_id: Store identifier of the record.

    Raises:
        ValidationError: If entity_id is empty.
    """

    entity_type: EntityType
    entity_id: str

    def __post_init__(self) -> None:
        if not isinstance(self.entity_type, EntityType):
            object.__setattr__(self, "entity_type", EntityType.parse(str(self.entity_type)))
        if not self.entity_id or not self.entity_id.strip():
            raise ValidationError("entity_id", "Entity id cannot be empty")

    def __str__(self) -> str:
        """Return ``type:id`` for logging and lock keys."""
        return f"{self.entity_type.value}:{self.entity_id}"

    @property
    def short_id(self) -> str:
        """First eight characters of the id, as shown for unnamed records."""
        return f"{self.entity_id[:8]}..."
