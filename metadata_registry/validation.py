"""
NFT Metadata Registry - Field Validation

Side-effect-free checks run before any store mutation. Each check returns the
validated value or raises the exception for its error kind. Lengths are
counted in code points.
"""

from typing import Any, List, Sequence

from pydantic import ValidationError

from .exceptions import (
    InvalidAttributesError, InvalidStringLengthError,
    InvalidTokenIdError, InvalidUriError
)
from .schema import MAX_ATTRIBUTES, Attribute, coerce_attribute


MAX_URI_LENGTH = 256
MAX_NAME_LENGTH = 256
MAX_DESCRIPTION_LENGTH = 1024
MAX_ATTRIBUTE_FIELD_LENGTH = 64


def _within_bounds(value: Any, max_length: int) -> bool:
    return isinstance(value, str) and 1 <= len(value) <= max_length


def validate_token_id(token_id: Any) -> int:
    """Token ids are positive integers."""
    if isinstance(token_id, bool) or not isinstance(token_id, int) or token_id <= 0:
        raise InvalidTokenIdError(f"Invalid token id: {token_id!r}")
    return token_id


def validate_uri(uri: Any) -> str:
    if not _within_bounds(uri, MAX_URI_LENGTH):
        raise InvalidUriError(f"URI must be 1-{MAX_URI_LENGTH} characters")
    return uri


def validate_name(name: Any) -> str:
    if not _within_bounds(name, MAX_NAME_LENGTH):
        raise InvalidStringLengthError(f"Name must be 1-{MAX_NAME_LENGTH} characters")
    return name


def validate_description(description: Any) -> str:
    if not _within_bounds(description, MAX_DESCRIPTION_LENGTH):
        raise InvalidStringLengthError(
            f"Description must be 1-{MAX_DESCRIPTION_LENGTH} characters"
        )
    return description


def validate_attributes(attributes: Sequence[Any]) -> List[Attribute]:
    """
    Validate an attribute list.

    The list holds at most 20 entries and every trait and value is 1-64
    characters. Entries may be Attribute models, (trait, value) pairs or
    dicts with trait_type/value keys.
    """
    if attributes is None:
        return []
    if isinstance(attributes, (str, bytes)) or not isinstance(attributes, Sequence):
        raise InvalidAttributesError("Attributes must be a list")
    if len(attributes) > MAX_ATTRIBUTES:
        raise InvalidAttributesError(
            f"At most {MAX_ATTRIBUTES} attributes allowed, got {len(attributes)}"
        )

    validated = []
    for index, item in enumerate(attributes):
        try:
            attribute = Attribute.model_validate(coerce_attribute(item))
        except ValidationError as e:
            raise InvalidAttributesError(f"Malformed attribute at index {index}: {e}")

        if not _within_bounds(attribute.trait_type, MAX_ATTRIBUTE_FIELD_LENGTH):
            raise InvalidAttributesError(
                f"Attribute {index} trait must be 1-{MAX_ATTRIBUTE_FIELD_LENGTH} characters"
            )
        if not _within_bounds(attribute.value, MAX_ATTRIBUTE_FIELD_LENGTH):
            raise InvalidAttributesError(
                f"Attribute {index} value must be 1-{MAX_ATTRIBUTE_FIELD_LENGTH} characters"
            )
        validated.append(attribute)

    return validated


def validate_record_fields(
    token_id: Any,
    name: Any,
    description: Any,
    image_uri: Any,
    attributes: Sequence[Any]
) -> List[Attribute]:
    """
    Run every field check in order: token id, image uri, name, description,
    attributes. The first failure wins. Returns the normalized attributes.
    """
    validate_token_id(token_id)
    validate_uri(image_uri)
    validate_name(name)
    validate_description(description)
    return validate_attributes(attributes)
