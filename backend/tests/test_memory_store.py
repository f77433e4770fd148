from dropfade.infra.memory import InMemoryBlobStore, InMemoryMetadataStore
from dropfade.models.drop import DropKind, DropRecord


def text_record(code="ABC123"):
    return DropRecord(
        code=code,
        kind=DropKind.TEXT,
        payload="hello",
        created_at=1_700_000_000_000,
        expires_at=1_700_000_060_000,
    )


def test_get_missing_is_none(metadata):
    assert metadata.get("NOPE00") is None


def test_set_then_get(metadata):
    assert metadata.set("ABC123", text_record(), 60)
    record = metadata.get("ABC123")
    assert record.payload == "hello"
    assert record.code == "ABC123"


def test_delete_is_idempotent(metadata):
    metadata.set("ABC123", text_record(), 60)
    assert metadata.delete("ABC123") is True
    assert metadata.delete("ABC123") is False


def test_ttl_eviction(metadata, clock):
    metadata.set("ABC123", text_record(), 60)
    assert metadata.remaining_ttl("ABC123") == 60
    clock.advance(59)
    assert metadata.get("ABC123") is not None
    clock.advance(1)
    assert metadata.get("ABC123") is None
    assert metadata.remaining_ttl("ABC123") is None


def test_remaining_ttl_without_expiry(metadata):
    metadata.set("ABC123", text_record(), None)
    assert metadata.remaining_ttl("ABC123") is None


def test_mark_consumed_keeps_ttl(metadata, clock):
    metadata.set("ABC123", text_record(), 60)
    clock.advance(20)
    assert metadata.mark_consumed("ABC123")
    assert metadata.get("ABC123").consumed is True
    assert metadata.remaining_ttl("ABC123") == 40


def test_mark_consumed_missing(metadata):
    assert metadata.mark_consumed("ABC123") is False


def test_expiry_index(metadata):
    metadata.track_expiry("AAA111", "memory://x/1/a.pdf", 100)
    metadata.track_expiry("BBB222", "memory://x/2/b.pdf", 300)
    assert metadata.due_expiries(200) == [("AAA111", "memory://x/1/a.pdf")]
    metadata.untrack_expiry("AAA111", "memory://x/1/a.pdf")
    assert metadata.due_expiries(200) == []
    assert len(metadata.due_expiries(1_000)) == 1


def test_blob_round_trip_and_delete():
    store = InMemoryBlobStore(folder="drops")
    stored = store.upload(b"%PDF-1.4", "my report.pdf")
    ref = store.ref_from_url(stored.public_url)
    assert ref == stored.blob_ref
    assert store.fetch(ref) == b"%PDF-1.4"
    assert store.delete(ref) is True
    assert store.delete(ref) is False
    assert ref not in store
