# dropfade/services/drop_lifecycle.py
"""
Drop lifecycle: create, peek, consume and reclaim.

A code moves Absent -> Active -> Consuming -> Gone, or
Active -> Expired -> Gone. Gone and Absent look the same from outside.

Two stores back a drop and neither is transactional with the other, so
the order of operations is what keeps the one-time guarantee:

- create writes the blob first and the record second, so a failure leaves
  at most an orphaned blob, never a record pointing at nothing;
- consume deletes the record before it fetches the blob. The store's
  per-key delete is atomic, so exactly one concurrent consumer sees
  ``removed=True``; everyone else reads the code as not found. A fetch
  that fails after that point loses the content rather than serving it
  twice.
"""

import logging
import time

from dropfade.core.codes import generate_code, is_well_formed, normalize_code
from dropfade.core.config import Settings
from dropfade.core.drop_logic import is_expired, now_ms
from dropfade.core.errors import (
    BlobFetchError,
    DeliveryFailure,
    Gone,
    NotFound,
    Oversize,
    StoreUnavailable,
    ValidationError,
)
from dropfade.infra.blob_store import BlobStore
from dropfade.infra.metadata_store import MetadataStore
from dropfade.models.drop import ConsumedDrop, DropKind, DropRecord

logger = logging.getLogger(__name__)


def _check_expiry(expiry_seconds):
    # bool is an int subclass
    if isinstance(expiry_seconds, bool) or not isinstance(expiry_seconds, int) or expiry_seconds <= 0:
        raise ValidationError("Expiry must be a positive number of seconds")


class DropLifecycleManager:
    def __init__(
        self,
        metadata: MetadataStore,
        blobs: BlobStore,
        settings: Settings | None = None,
        clock=time.time,
    ):
        self.metadata = metadata
        self.blobs = blobs
        self.settings = settings or Settings()
        self.clock = clock

    # =========================
    # CREATE
    # =========================

    def create(self, kind, payload, display_name=None, expiry_seconds=3600):
        kind = DropKind(kind)
        if kind is DropKind.TEXT:
            return self.create_text(payload, expiry_seconds)
        return self.create_file(payload, display_name, expiry_seconds)

    def create_text(self, text, expiry_seconds: int) -> str:
        _check_expiry(expiry_seconds)
        if not text or not isinstance(text, str):
            raise ValidationError("No text provided")
        limit = self.settings.max_text_length
        if len(text) > limit:
            raise ValidationError(f"Text too long (max {limit} characters)")

        code = self._new_code()
        record = self._new_record(code, DropKind.TEXT, text, None, expiry_seconds)
        self._persist(record, expiry_seconds)
        logger.info("Text drop %s created, expires in %ss", code, expiry_seconds)
        return code

    def create_file(self, data: bytes, filename: str, expiry_seconds: int, content_hint=None) -> str:
        _check_expiry(expiry_seconds)
        if not data or not filename:
            raise ValidationError("No file provided")
        if len(data) > self.settings.max_file_size:
            raise Oversize()

        # Picking the code first means a StoreUnavailable here aborts
        # before anything is uploaded.
        code = self._new_code()
        stored = self.blobs.upload(data, filename, content_hint)

        record = self._new_record(code, DropKind.FILE, stored.public_url, filename, expiry_seconds)
        try:
            self._persist(record, expiry_seconds)
        except StoreUnavailable:
            logger.error("Record for %s not saved, removing uploaded blob %s", code, stored.blob_ref.public_id)
            self._delete_blob(stored.blob_ref)
            raise

        try:
            self.metadata.track_expiry(code, stored.public_url, record.expires_at)
        except StoreUnavailable as e:
            # Lazy reclaim still covers this drop
            logger.warning("Could not index expiry of %s: %s", code, e)

        logger.info("File drop %s created (%s bytes), expires in %ss", code, len(data), expiry_seconds)
        return code

    def _new_code(self) -> str:
        length = self.settings.code_length
        if not self.settings.verify_unique_codes:
            return generate_code(length)

        for _ in range(self.settings.code_attempts):
            code = generate_code(length)
            if self.metadata.get(code) is None:
                return code
            logger.warning("Generated code %s already in use, retrying", code)
        raise StoreUnavailable("Could not allocate a unique code")

    def _new_record(self, code, kind, payload, display_name, expiry_seconds) -> DropRecord:
        created_at = now_ms(self.clock)
        return DropRecord(
            code=code,
            kind=kind,
            payload=payload,
            display_name=display_name,
            created_at=created_at,
            expires_at=created_at + int(expiry_seconds) * 1000,
            consumed=False,
        )

    def _persist(self, record: DropRecord, expiry_seconds: int):
        if not self.metadata.set(record.code, record, expiry_seconds):
            raise StoreUnavailable("Failed to save drop data")

    # =========================
    # READ
    # =========================

    def peek(self, code: str) -> DropRecord:
        """Look at a drop without using up its access"""
        return self._load_live(code)

    def consume(self, code: str) -> ConsumedDrop:
        """
        The one-time read. The order below must not change:

        1. load and check the record
        2. delete the record; losing that delete means someone else consumed it
        3. only then touch the blob
        """
        record = self._load_live(code)
        self._claim(record)

        if record.kind is DropKind.TEXT:
            logger.info("Text drop %s consumed", record.code)
            return ConsumedDrop(DropKind.TEXT, record.payload, record.display_name)

        blob_ref = self.blobs.ref_from_url(record.payload)
        try:
            data = self.blobs.fetch(blob_ref)
        except (BlobFetchError, StoreUnavailable) as e:
            logger.error("Drop %s consumed but blob %s could not be fetched: %s", record.code, blob_ref.public_id, e)
            self._delete_blob(blob_ref)
            self._untrack(record)
            raise DeliveryFailure() from e

        if not self._delete_blob(blob_ref):
            logger.warning("Blob %s for drop %s was not deleted, download will proceed", blob_ref.public_id, record.code)
        self._untrack(record)

        logger.info("✅ File drop %s consumed (%s bytes), removed from all storage", record.code, len(data))
        return ConsumedDrop(DropKind.FILE, data, record.display_name)

    def redeem(self, code: str) -> DropKind:
        """Spend a drop's access without delivering it (client already has the content)"""
        record = self._load_live(code)
        self._claim(record)
        if record.kind is DropKind.FILE:
            self._delete_blob(self.blobs.ref_from_url(record.payload))
            self._untrack(record)
        logger.info("Drop %s redeemed", record.code)
        return record.kind

    def _load_live(self, code: str) -> DropRecord:
        code = normalize_code(code)
        if not is_well_formed(code):
            raise NotFound()

        record = self.metadata.get(code)
        if record is None:
            logger.info("Drop %s not found", code)
            raise NotFound()
        record.code = code

        if record.consumed:
            logger.info("Drop %s already accessed", code)
            raise Gone("consumed")

        # The store's own TTL eviction is not synchronized with the blob,
        # so a record can still be readable after its expiry.
        if is_expired(record.expires_at, now_ms(self.clock)):
            logger.info("Drop %s expired, reclaiming", code)
            self.reclaim_expired(record)
            raise Gone("expired")

        return record

    def _claim(self, record: DropRecord):
        if not self.metadata.delete(record.code):
            logger.info("Drop %s lost the consume race", record.code)
            raise Gone("consumed")

    # =========================
    # RECLAIM
    # =========================

    def reclaim_expired(self, record: DropRecord):
        self.metadata.delete(record.code)
        if record.kind is DropKind.FILE:
            deleted = self._delete_blob(self.blobs.ref_from_url(record.payload))
            logger.info("Expired blob for %s deleted: %s", record.code, deleted)
            self._untrack(record)

    def sweep_expired(self, limit: int = 100) -> int:
        """Reclaim file drops past their expiry that nobody came back for"""
        reclaimed = 0
        for code, url in self.metadata.due_expiries(now_ms(self.clock), limit):
            record = self.metadata.get(code)
            # The code may have been reissued after the old record was evicted
            if record is not None and record.payload == url:
                self.metadata.delete(code)
            self._delete_blob(self.blobs.ref_from_url(url))
            self.metadata.untrack_expiry(code, url)
            reclaimed += 1
        if reclaimed:
            logger.info("Sweeper reclaimed %s expired drops", reclaimed)
        return reclaimed

    def _delete_blob(self, blob_ref) -> bool:
        try:
            return self.blobs.delete(blob_ref)
        except Exception as e:
            logger.warning("Blob delete %s failed: %s", blob_ref.public_id, e)
            return False

    def _untrack(self, record: DropRecord):
        try:
            self.metadata.untrack_expiry(record.code, record.payload)
        except StoreUnavailable as e:
            logger.warning("Could not drop expiry index entry for %s: %s", record.code, e)
