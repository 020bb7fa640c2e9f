"""
NFT Metadata Registry - Exceptions

This module defines the error kinds reported by registry operations and the
exception classes used to signal them internally.
"""

from enum import Enum
from typing import Dict, Optional, Type


class ErrorKind(str, Enum):
    """Error kinds returned by registry operations."""
    NOT_OWNER = "not_owner"
    NOT_FOUND = "not_found"
    INVALID_URI = "invalid_uri"
    ALREADY_EXISTS = "already_exists"
    INVALID_TOKEN_ID = "invalid_token_id"
    INVALID_STRING_LENGTH = "invalid_string_length"
    INVALID_ATTRIBUTES = "invalid_attributes"


class MetadataRegistryError(Exception):
    """Base exception for all registry errors."""
    kind: Optional[ErrorKind] = None


class BatchTooLargeError(ValueError):
    """Raised when a bulk registration holds more records than one call accepts."""
    pass


class NotOwnerError(MetadataRegistryError):
    """Raised when a mutating call does not come from the owner."""
    kind = ErrorKind.NOT_OWNER


class TokenNotFoundError(MetadataRegistryError):
    """Raised when a revision targets an unregistered token id."""
    kind = ErrorKind.NOT_FOUND


class InvalidUriError(MetadataRegistryError):
    """Raised when a URI is empty or longer than 256 characters."""
    kind = ErrorKind.INVALID_URI


class AlreadyExistsError(MetadataRegistryError):
    """Raised when registering a token id that already has metadata."""
    kind = ErrorKind.ALREADY_EXISTS


class InvalidTokenIdError(MetadataRegistryError):
    """Raised when a token id is not a positive integer."""
    kind = ErrorKind.INVALID_TOKEN_ID


class InvalidStringLengthError(MetadataRegistryError):
    """Raised when a name or description is out of bounds."""
    kind = ErrorKind.INVALID_STRING_LENGTH


class InvalidAttributesError(MetadataRegistryError):
    """Raised when an attribute list or one of its entries is out of bounds."""
    kind = ErrorKind.INVALID_ATTRIBUTES


_EXCEPTIONS_BY_KIND: Dict[ErrorKind, Type[MetadataRegistryError]] = {
    cls.kind: cls
    for cls in (
        NotOwnerError,
        TokenNotFoundError,
        InvalidUriError,
        AlreadyExistsError,
        InvalidTokenIdError,
        InvalidStringLengthError,
        InvalidAttributesError,
    )
}


def exception_for_kind(kind: ErrorKind) -> Type[MetadataRegistryError]:
    """Map an error kind to its exception class."""
    return _EXCEPTIONS_BY_KIND[ErrorKind(kind)]
