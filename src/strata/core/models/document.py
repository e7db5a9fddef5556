"""Model objects for the document adapter."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class DocumentSchema:
    """
    Declarative description of a collection.

    ``validator`` is a MongoDB ``$jsonSchema`` document; ``indexes`` is a list
    of ``(keys, options)`` pairs passed to ``create_index``.  ``refs`` maps a
    field name to the model name it references.
    """

    validator: dict[str, Any] = field(default_factory=dict)
    indexes: list[tuple[Any, dict[str, Any]]] = field(default_factory=list)
    refs: dict[str, str] = field(default_factory=dict)
    collection: str | None = None


@dataclass
class DocumentModel:
    """A collection bound to a live database, with resolved references."""

    name: str
    collection: str
    schema: DocumentSchema = field(default_factory=DocumentSchema)
    database: Any = None
    associations: dict[str, DocumentModel] = field(default_factory=dict)

    @property
    def documents(self) -> Any:
        """The pymongo ``Collection`` backing this model."""
        return self.database[self.collection]

    def references(self, field_name: str, model: DocumentModel) -> None:
        """Record that *field_name* holds ids of *model* documents."""
        self.associations[field_name] = model


__all__ = ["DocumentSchema", "DocumentModel"]
