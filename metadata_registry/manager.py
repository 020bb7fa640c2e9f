"""
NFT Metadata Registry - Registry Manager

This module provides the operation layer of the registry: owner-gated
registration, revision and bulk registration of metadata records, token URI
management, and read access to both stores.

Every public operation returns an OperationResult instead of raising. Field
checks run before any store mutation, so a rejected single-record call
leaves both stores untouched.
"""

import logging
from threading import RLock
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .exceptions import (
    AlreadyExistsError, BatchTooLargeError, MetadataRegistryError,
    NotOwnerError, TokenNotFoundError
)
from .providers import IdentityProvider, SequenceProvider
from .schema import (
    MAX_BATCH_SIZE, AttributeInput, MetadataRecord,
    OperationResult, RecordBatch, UriRecord
)
from .storage import MetadataStore, UriStore
from .validation import validate_record_fields, validate_token_id, validate_uri


logger = logging.getLogger(__name__)


class MetadataRegistry:
    """Single-owner store of NFT metadata records and token URIs."""

    def __init__(
        self,
        metadata_store: MetadataStore,
        uri_store: UriStore,
        identity: IdentityProvider,
        sequence: SequenceProvider,
        owner: Optional[str] = None
    ):
        self.metadata_store = metadata_store
        self.uri_store = uri_store
        self.identity = identity
        self.sequence = sequence
        # Without an explicit owner, whoever constructs the registry owns it
        self._owner = owner if owner is not None else identity.current_caller()
        self._last_marker: Optional[int] = None
        self._lock = RLock()

        logger.info(f"Metadata registry initialized for owner {self._owner}")

    @property
    def owner(self) -> str:
        return self._owner

    def _require_owner(self) -> None:
        caller = self.identity.current_caller()
        if caller != self._owner:
            raise NotOwnerError(f"Caller {caller} is not the registry owner")

    def _next_marker(self) -> int:
        marker = self.sequence.current()
        self._last_marker = marker
        return marker

    def _insert_record(
        self,
        token_id: Any,
        name: Any,
        description: Any,
        image_uri: Any,
        attributes: Sequence[AttributeInput],
        marker: Optional[int] = None
    ) -> int:
        """
        Validate and insert one record. Ownership is checked by the caller.

        Returns the sequence marker stamped on the record.
        """
        validated_attributes = validate_record_fields(
            token_id, name, description, image_uri, attributes
        )

        if self.metadata_store.contains(token_id):
            raise AlreadyExistsError(f"Metadata for token {token_id} already exists")

        if marker is None:
            marker = self._next_marker()
        record = MetadataRecord(
            name=name,
            description=description,
            image_uri=image_uri,
            attributes=validated_attributes,
            created_at=marker,
            updated_at=marker
        )
        self.metadata_store.put(token_id, record)
        return marker

    def register(
        self,
        token_id: Any,
        name: Any,
        description: Any,
        image_uri: Any,
        attributes: Sequence[AttributeInput] = ()
    ) -> OperationResult:
        """Register metadata for a token id that has none yet."""
        with self._lock:
            try:
                self._require_owner()
                self._insert_record(token_id, name, description, image_uri, attributes)
            except MetadataRegistryError as e:
                logger.warning(f"Register rejected for token {token_id!r}: {e.kind.value}")
                return OperationResult.failure(e.kind)

            logger.info(f"Registered metadata for token {token_id}")
            return OperationResult.success()

    def revise(
        self,
        token_id: Any,
        name: Any,
        description: Any,
        image_uri: Any,
        attributes: Sequence[AttributeInput] = ()
    ) -> OperationResult:
        """Overwrite the mutable fields of an existing record, keeping created_at."""
        with self._lock:
            try:
                self._require_owner()
                validated_attributes = validate_record_fields(
                    token_id, name, description, image_uri, attributes
                )

                existing = self.metadata_store.get(token_id)
                if existing is None:
                    raise TokenNotFoundError(f"No metadata for token {token_id}")

                record = MetadataRecord(
                    name=name,
                    description=description,
                    image_uri=image_uri,
                    attributes=validated_attributes,
                    created_at=existing.created_at,
                    updated_at=max(self._next_marker(), existing.created_at)
                )
                self.metadata_store.put(token_id, record)
            except MetadataRegistryError as e:
                logger.warning(f"Revise rejected for token {token_id!r}: {e.kind.value}")
                return OperationResult.failure(e.kind)

            logger.info(f"Revised metadata for token {token_id}")
            return OperationResult.success()

    def read(self, token_id: Any) -> OperationResult:
        """
        Read the metadata record for a token id.

        A missing record is a successful result whose value is None.
        """
        with self._lock:
            try:
                validate_token_id(token_id)
            except MetadataRegistryError as e:
                return OperationResult.failure(e.kind)

            record = self.metadata_store.get(token_id)
            logger.debug(f"Read metadata for token {token_id}: {'hit' if record is not None else 'miss'}")
            return OperationResult.success(record)

    def set_uri(self, token_id: Any, uri: Any) -> OperationResult:
        """Insert or overwrite the token URI for a token id."""
        with self._lock:
            try:
                self._require_owner()
                validate_token_id(token_id)
                validate_uri(uri)
            except MetadataRegistryError as e:
                logger.warning(f"Set URI rejected for token {token_id!r}: {e.kind.value}")
                return OperationResult.failure(e.kind)

            self.uri_store.put(token_id, UriRecord(uri=uri))
            logger.info(f"Set URI for token {token_id}")
            return OperationResult.success()

    def read_uri(self, token_id: Any) -> OperationResult:
        """Read the token URI for a token id; None when unset."""
        with self._lock:
            try:
                validate_token_id(token_id)
            except MetadataRegistryError as e:
                return OperationResult.failure(e.kind)

            return OperationResult.success(self.uri_store.get(token_id))

    def bulk_register(self, records: Iterable[Any]) -> OperationResult:
        """
        Register up to 50 records in order.

        Each element is checked exactly as register() would check it, and
        processing stops at the first failing element with that element's
        error. Records registered before the failure stay registered;
        records after it are not attempted.

        Args:
            records: RecordBatch, or RecordInput models / dicts with the
                same keys

        Raises:
            BatchTooLargeError: if the batch holds more than 50 records
        """
        with self._lock:
            try:
                self._require_owner()
            except MetadataRegistryError as e:
                logger.warning(f"Bulk register rejected: {e.kind.value}")
                return OperationResult.failure(e.kind)

            items = list(records.records if isinstance(records, RecordBatch) else records)
            if len(items) > MAX_BATCH_SIZE:
                raise BatchTooLargeError(
                    f"At most {MAX_BATCH_SIZE} records per call, got {len(items)}"
                )

            marker = None
            result = OperationResult.success()
            applied = 0

            for item in items:
                if not result.ok:
                    break
                try:
                    marker = self._insert_record(*_record_fields(item), marker=marker)
                except MetadataRegistryError as e:
                    result = OperationResult.failure(e.kind)
                else:
                    applied += 1

            if result.ok:
                logger.info(f"Bulk registered {applied} records")
            else:
                logger.warning(
                    f"Bulk register stopped after {applied} of {len(items)} records: "
                    f"{result.error.value}"
                )
            return result

    def list_token_ids(self) -> List[int]:
        """List token ids that have a metadata record."""
        with self._lock:
            return self.metadata_store.token_ids()

    def get_stats(self) -> Dict[str, Any]:
        """Get registry statistics."""
        with self._lock:
            return {
                'owner': self._owner,
                'metadata_records': len(self.metadata_store.token_ids()),
                'uri_records': len(self.uri_store.token_ids()),
                'last_sequence_marker': self._last_marker,
            }


def _record_fields(item: Any) -> Tuple[Any, Any, Any, Any, Any]:
    """Pull register() arguments out of a bulk element without coercing them."""
    if isinstance(item, Mapping):
        return (
            item.get('token_id'), item.get('name'), item.get('description'),
            item.get('image_uri'), item.get('attributes', ())
        )
    return (
        getattr(item, 'token_id', None), getattr(item, 'name', None),
        getattr(item, 'description', None), getattr(item, 'image_uri', None),
        getattr(item, 'attributes', ())
    )
