"""
NFT Metadata Registry - Schema Models

This module defines the Pydantic models for metadata records, URI records,
bulk registration input and the result value returned by every registry
operation.
"""

from typing import Any, List, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from .exceptions import ErrorKind, exception_for_kind


MAX_ATTRIBUTES = 20
MAX_BATCH_SIZE = 50


class Attribute(BaseModel):
    """Single trait/value pair attached to a metadata record."""

    trait_type: str = Field(..., description="Trait name")
    value: str = Field(..., description="Trait value")


AttributeInput = Union[Attribute, Tuple[str, str], dict]


def coerce_attribute(item: Any) -> Any:
    """Turn a (trait, value) pair into an Attribute; leave anything else alone."""
    if isinstance(item, (tuple, list)) and len(item) == 2:
        return Attribute(trait_type=item[0], value=item[1])
    return item


class MetadataRecord(BaseModel):
    """Metadata stored for one token id."""

    name: str
    description: str
    image_uri: str
    attributes: List[Attribute] = Field(default_factory=list)
    created_at: int = Field(..., ge=0, description="Sequence marker at registration")
    updated_at: int = Field(..., ge=0, description="Sequence marker at last write")

    @field_validator('attributes', mode='before')
    @classmethod
    def coerce_attributes(cls, v):
        """Accept (trait, value) pairs as attribute entries."""
        if v is None:
            return []
        return [coerce_attribute(item) for item in v]

    @model_validator(mode='after')
    def validate_timestamps(self):
        """Ensure the record was not updated before it was created."""
        if self.updated_at < self.created_at:
            raise ValueError('updated_at cannot precede created_at')
        return self


class UriRecord(BaseModel):
    """Canonical token URI stored for one token id."""

    uri: str


class RecordInput(BaseModel):
    """
    One element of a bulk registration request.

    Scalar fields are strict so a record never carries a value that
    register() would reject as the wrong type.
    """

    token_id: int = Field(..., strict=True)
    name: str = Field(..., strict=True)
    description: str = Field(..., strict=True)
    image_uri: str = Field(..., strict=True)
    attributes: List[Attribute] = Field(default_factory=list, max_length=MAX_ATTRIBUTES)

    @field_validator('attributes', mode='before')
    @classmethod
    def coerce_attributes(cls, v):
        if v is None:
            return []
        return [coerce_attribute(item) for item in v]


class RecordBatch(BaseModel):
    """Ordered list of records for bulk registration."""

    records: List[RecordInput] = Field(default_factory=list, max_length=MAX_BATCH_SIZE)


class OperationResult(BaseModel):
    """Outcome of a registry operation: success with an optional value, or an error kind."""

    ok: bool
    error: Optional[ErrorKind] = None
    value: Any = None

    @classmethod
    def success(cls, value: Any = None) -> "OperationResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, kind: ErrorKind) -> "OperationResult":
        return cls(ok=False, error=kind)

    def __bool__(self) -> bool:
        return self.ok

    def unwrap(self) -> Any:
        """Return the value, or raise the exception matching the error kind."""
        if self.ok:
            return self.value
        raise exception_for_kind(self.error)(f"Operation failed: {self.error.value}")
