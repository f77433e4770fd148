# dropfade/infra/memory.py
#
# Process-local stores for development and tests. Both are safe to share
# between request threads: every read-modify-write happens under a lock,
# which is what makes delete() atomic per key.

import os
import threading
import time
import uuid
from urllib.parse import quote, unquote, urlparse

from dropfade.core.errors import BlobFetchError
from dropfade.infra.metadata_store import MetadataStore, index_member, parse_index_member
from dropfade.infra.blob_store import BlobStore
from dropfade.models.drop import BlobRef, DropRecord, StoredBlob


class InMemoryMetadataStore(MetadataStore):
    def __init__(self, clock=time.time):
        self._clock = clock
        self._lock = threading.Lock()
        # code -> (record json, evict-at seconds or None)
        self._data = {}
        # member -> score (expires_at ms)
        self._expiry_index = {}

    def _live(self, code):
        entry = self._data.get(code)
        if entry is None:
            return None
        raw, evict_at = entry
        if evict_at is not None and self._clock() >= evict_at:
            del self._data[code]
            return None
        return entry

    def set(self, code, record, ttl_seconds):
        evict_at = self._clock() + ttl_seconds if ttl_seconds and ttl_seconds > 0 else None
        with self._lock:
            self._data[code] = (record.to_json(), evict_at)
        return True

    def get(self, code):
        with self._lock:
            entry = self._live(code)
        if entry is None:
            return None
        return DropRecord.from_json(entry[0], code=code)

    def delete(self, code):
        with self._lock:
            if self._live(code) is None:
                return False
            del self._data[code]
            return True

    def remaining_ttl(self, code):
        with self._lock:
            entry = self._live(code)
        if entry is None or entry[1] is None:
            return None
        return max(0, int(entry[1] - self._clock()))

    def ping(self):
        return True

    def track_expiry(self, code, url, expires_at):
        with self._lock:
            self._expiry_index[index_member(code, url)] = int(expires_at)

    def due_expiries(self, now_ms, limit=100):
        with self._lock:
            due = sorted(
                (score, member) for member, score in self._expiry_index.items()
                if score <= now_ms
            )
        return [parse_index_member(member) for _, member in due[:limit]]

    def untrack_expiry(self, code, url):
        with self._lock:
            self._expiry_index.pop(index_member(code, url), None)

    def __len__(self):
        with self._lock:
            return sum(1 for code in list(self._data) if self._live(code) is not None)


class InMemoryBlobStore(BlobStore):
    """Blobs in a dict, addressed as memory://<folder>/<id>/<filename>"""

    def __init__(self, folder="dropfade"):
        self.folder = folder.strip("/")
        self._lock = threading.Lock()
        self._blobs = {}

    def upload(self, data, name, content_hint=None):
        public_id = f"{self.folder}/{uuid.uuid4().hex}"
        with self._lock:
            self._blobs[public_id] = bytes(data)
        _, ext = os.path.splitext(name or "")
        return StoredBlob(
            blob_ref=BlobRef(public_id),
            public_url=f"memory://{public_id}/{quote(name or 'file')}",
            original_filename=name,
            format=ext.lstrip(".").lower() or None,
            size=len(data),
        )

    def fetch(self, blob_ref):
        with self._lock:
            data = self._blobs.get(blob_ref.public_id)
        if data is None:
            raise BlobFetchError(f"Blob {blob_ref.public_id} not found")
        return data

    def delete(self, blob_ref):
        with self._lock:
            return self._blobs.pop(blob_ref.public_id, None) is not None

    def ref_from_url(self, url):
        parsed = urlparse(url)
        parts = [unquote(p) for p in (parsed.netloc + parsed.path).split("/") if p]
        # <folder...>/<id>/<filename>
        return BlobRef("/".join(parts[:-1]))

    def __contains__(self, blob_ref):
        with self._lock:
            return blob_ref.public_id in self._blobs

    def __len__(self):
        with self._lock:
            return len(self._blobs)
