"""
NFT Metadata Registry

Single-owner store for NFT metadata records and token URIs keyed by
positive integer token ids.
"""

from .exceptions import (
    ErrorKind,
    MetadataRegistryError,
    NotOwnerError,
    TokenNotFoundError,
    InvalidUriError,
    AlreadyExistsError,
    InvalidTokenIdError,
    InvalidStringLengthError,
    InvalidAttributesError,
    BatchTooLargeError
)

from .schema import (
    Attribute,
    MetadataRecord,
    UriRecord,
    RecordInput,
    RecordBatch,
    OperationResult
)

from .providers import (
    IdentityProvider,
    StaticIdentityProvider,
    SequenceProvider,
    CounterSequence,
    ManualSequence,
    ClockSequence
)

from .storage import (
    KeyValueStore,
    InMemoryStore,
    JSONFileStore,
    MetadataStore,
    UriStore,
    StorageError
)

from .manager import MetadataRegistry

from .config import (
    RegistryConfig,
    ConfigurationManager,
    load_config,
    create_registry
)

__version__ = "1.0.0"

__all__ = [
    # Errors
    "ErrorKind",
    "MetadataRegistryError",
    "NotOwnerError",
    "TokenNotFoundError",
    "InvalidUriError",
    "AlreadyExistsError",
    "InvalidTokenIdError",
    "InvalidStringLengthError",
    "InvalidAttributesError",
    "BatchTooLargeError",

    # Models
    "Attribute",
    "MetadataRecord",
    "UriRecord",
    "RecordInput",
    "RecordBatch",
    "OperationResult",

    # Providers
    "IdentityProvider",
    "StaticIdentityProvider",
    "SequenceProvider",
    "CounterSequence",
    "ManualSequence",
    "ClockSequence",

    # Storage
    "KeyValueStore",
    "InMemoryStore",
    "JSONFileStore",
    "MetadataStore",
    "UriStore",
    "StorageError",

    # Registry
    "MetadataRegistry",
    "RegistryConfig",
    "ConfigurationManager",
    "load_config",
    "create_registry"
]
