"""Core document schemas shared by the storage layer and the backup engine.

Architecture:
- Storage Layer: a document is an identifier plus a field mapping; the
  identifier is the storage key and is never part of the fields.
- Snapshot Layer: Records are grouped per collection in capture order
  (see oculus_backup.backup.models).
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# A field value as the portal stores it. Nested mappings and lists may hold any
# of these recursively.
FieldValue = Union[None, bool, int, float, str, datetime, Dict[str, Any], List[Any]]


class Record(BaseModel):
    """One document: identifier plus ordered field mapping.

    The identifier is assigned by the origin collection and never rewritten by
    backup or restore.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    fields: Dict[str, Any] = Field(default_factory=dict)


class BatchOperation(BaseModel):
    """A single delete or set inside an atomic storage batch."""

    model_config = ConfigDict(frozen=True)

    op: Literal["delete", "set"]
    doc_id: str = Field(..., min_length=1)
    fields: Optional[Dict[str, Any]] = None

    @classmethod
    def delete(cls, doc_id: str) -> "BatchOperation":
        return cls(op="delete", doc_id=doc_id)

    @classmethod
    def set(cls, doc_id: str, fields: Dict[str, Any]) -> "BatchOperation":
        return cls(op="set", doc_id=doc_id, fields=fields)
