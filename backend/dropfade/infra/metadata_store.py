# dropfade/infra/metadata_store.py

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Tuple

import requests
from pydantic import ValidationError as RecordError

from dropfade.core.errors import StoreUnavailable
from dropfade.models.drop import DropRecord

logger = logging.getLogger(__name__)

KEY_PREFIX = "drop:"
EXPIRY_INDEX_KEY = "drops:expiry"


def drop_key(code: str) -> str:
    return f"{KEY_PREFIX}{code}"


def index_member(code: str, url: str) -> str:
    # Codes are alphanumeric, so the first "|" always ends the code
    return f"{code}|{url}"


def parse_index_member(member: str) -> Tuple[str, str]:
    code, _, url = member.partition("|")
    return code, url


class MetadataStore(ABC):
    """Key/value store for drop records with per-key TTL"""

    @abstractmethod
    def set(self, code: str, record: DropRecord, ttl_seconds: Optional[int]) -> bool:
        """Persist with expiry; silently overwrites an existing record"""

    @abstractmethod
    def get(self, code: str) -> Optional[DropRecord]:
        """Return the record, or None when absent"""

    @abstractmethod
    def delete(self, code: str) -> bool:
        """True only if a record existed when the delete ran"""

    @abstractmethod
    def remaining_ttl(self, code: str) -> Optional[int]:
        """Seconds until eviction, None when missing or without expiry"""

    @abstractmethod
    def ping(self) -> bool:
        pass

    # Expiry index: lets a sweeper find blobs whose records were evicted
    # by the store's own TTL before anyone touched them again.

    @abstractmethod
    def track_expiry(self, code: str, url: str, expires_at: int) -> None:
        pass

    @abstractmethod
    def due_expiries(self, now_ms: int, limit: int = 100) -> List[Tuple[str, str]]:
        pass

    @abstractmethod
    def untrack_expiry(self, code: str, url: str) -> None:
        pass

    def mark_consumed(self, code: str) -> bool:
        """
        Flag the record as consumed without resetting its expiry.

        Consume and redeem delete the record outright and never call this.
        A record that carries the flag anyway (written by an older writer or
        an operator) is still refused by peek and consume.
        """
        record = self.get(code)
        if record is None:
            return False
        record.consumed = True
        ttl = self.remaining_ttl(code)
        return self.set(code, record, ttl)


class UpstashMetadataStore(MetadataStore):
    """
    Upstash Redis over its REST API.

    Each command is POSTed as a JSON array (``["GET", "drop:ABC123"]``)
    with a bearer token; replies are ``{"result": ...}`` or ``{"error": ...}``.
    """

    def __init__(self, url: str, token: str, timeout: float = 10.0, session=None):
        if not url or not token:
            raise ValueError("Upstash URL and token are required")
        self.url = url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        })

    def _command(self, *args: Any) -> Any:
        command = [str(a) for a in args]
        try:
            resp = self.session.post(self.url, json=command, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("Upstash %s failed: %s", command[0], e)
            raise StoreUnavailable(f"Metadata store unreachable: {e}") from e

        try:
            data = resp.json()
        except ValueError:
            data = {}

        if not resp.ok or "error" in data:
            detail = data.get("error") or resp.reason
            logger.error("Upstash %s rejected (%s): %s", command[0], resp.status_code, detail)
            raise StoreUnavailable(f"Metadata store error: {detail}")

        return data.get("result")

    def set(self, code, record, ttl_seconds):
        if ttl_seconds and ttl_seconds > 0:
            result = self._command("SET", drop_key(code), record.to_json(), "EX", int(ttl_seconds))
        else:
            result = self._command("SET", drop_key(code), record.to_json())
        return result == "OK"

    def get(self, code):
        raw = self._command("GET", drop_key(code))
        if raw is None:
            return None
        try:
            return DropRecord.from_json(raw, code=code)
        except RecordError:
            logger.warning("Unreadable record under %s, treating as absent", drop_key(code))
            return None

    def delete(self, code):
        return self._command("DEL", drop_key(code)) == 1

    def remaining_ttl(self, code):
        ttl = self._command("TTL", drop_key(code))
        # -2: no such key, -1: key without expiry
        if ttl is None or int(ttl) < 0:
            return None
        return int(ttl)

    def ping(self):
        try:
            return self._command("PING") == "PONG"
        except StoreUnavailable:
            return False

    def track_expiry(self, code, url, expires_at):
        self._command("ZADD", EXPIRY_INDEX_KEY, int(expires_at), index_member(code, url))

    def due_expiries(self, now_ms, limit=100):
        members = self._command(
            "ZRANGEBYSCORE", EXPIRY_INDEX_KEY, "-inf", int(now_ms), "LIMIT", 0, int(limit)
        )
        return [parse_index_member(m) for m in members or []]

    def untrack_expiry(self, code, url):
        self._command("ZREM", EXPIRY_INDEX_KEY, index_member(code, url))


def build_metadata_store(settings, clock=None) -> MetadataStore:
    if settings.uses_upstash:
        return UpstashMetadataStore(
            settings.upstash_url,
            settings.upstash_token,
            timeout=settings.store_timeout_seconds,
        )

    from dropfade.infra.memory import InMemoryMetadataStore

    logger.warning("Upstash not configured, drop records are kept in process memory")
    return InMemoryMetadataStore(clock=clock) if clock else InMemoryMetadataStore()
