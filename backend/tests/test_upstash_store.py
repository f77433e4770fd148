from unittest import mock

import pytest
import requests

from dropfade.core.errors import StoreUnavailable
from dropfade.infra.metadata_store import UpstashMetadataStore
from dropfade.models.drop import DropKind, DropRecord

URL = "https://eu1-example.upstash.io"


def reply(result=None, status=200, error=None):
    resp = mock.Mock(status_code=status, ok=status < 400, reason="Bad Request" if status >= 400 else "OK")
    body = {"error": error} if error else {"result": result}
    resp.json.return_value = body
    return resp


@pytest.fixture
def session():
    return mock.Mock(headers={})


@pytest.fixture
def store(session):
    return UpstashMetadataStore(URL + "/", "secret-token", timeout=3, session=session)


def sent(session):
    return session.post.call_args.kwargs["json"]


def record():
    return DropRecord(
        kind=DropKind.TEXT,
        payload="hello",
        created_at=1_000,
        expires_at=3_601_000,
    )


def test_auth_header(store, session):
    assert session.headers["Authorization"] == "Bearer secret-token"


def test_requires_credentials():
    with pytest.raises(ValueError):
        UpstashMetadataStore("", "token")


def test_set_uses_expiry(store, session):
    session.post.return_value = reply("OK")
    assert store.set("ABC123", record(), 3600) is True
    command = sent(session)
    assert command[:2] == ["SET", "drop:ABC123"]
    assert command[3:] == ["EX", "3600"]
    assert session.post.call_args.args == (URL,)
    assert session.post.call_args.kwargs["timeout"] == 3


def test_set_without_ttl(store, session):
    session.post.return_value = reply("OK")
    store.set("ABC123", record(), None)
    assert len(sent(session)) == 3


def test_get_missing(store, session):
    session.post.return_value = reply(None)
    assert store.get("ABC123") is None
    assert sent(session) == ["GET", "drop:ABC123"]


def test_get_decodes_record(store, session):
    session.post.return_value = reply(record().to_json())
    got = store.get("ABC123")
    assert got.payload == "hello"
    assert got.code == "ABC123"


def test_get_garbage_is_absent(store, session):
    session.post.return_value = reply("{not json")
    assert store.get("ABC123") is None


def test_delete_reports_existence(store, session):
    session.post.side_effect = [reply(1), reply(0)]
    assert store.delete("ABC123") is True
    assert store.delete("ABC123") is False


@pytest.mark.parametrize("ttl,expected", [(42, 42), (-1, None), (-2, None)])
def test_remaining_ttl(store, session, ttl, expected):
    session.post.return_value = reply(ttl)
    assert store.remaining_ttl("ABC123") == expected


def test_network_error_is_store_unavailable(store, session):
    session.post.side_effect = requests.ConnectionError("refused")
    with pytest.raises(StoreUnavailable):
        store.get("ABC123")


def test_error_reply_is_store_unavailable(store, session):
    session.post.return_value = reply(status=401, error="Unauthorized")
    with pytest.raises(StoreUnavailable):
        store.delete("ABC123")


def test_error_body_with_200_is_store_unavailable(store, session):
    session.post.return_value = reply(error="WRONGTYPE")
    with pytest.raises(StoreUnavailable):
        store.get("ABC123")


def test_ping(store, session):
    session.post.return_value = reply("PONG")
    assert store.ping() is True
    session.post.side_effect = requests.Timeout()
    assert store.ping() is False


def test_expiry_index_commands(store, session):
    session.post.return_value = reply(1)
    store.track_expiry("ABC123", "https://x/a.pdf", 5_000)
    assert sent(session) == ["ZADD", "drops:expiry", "5000", "ABC123|https://x/a.pdf"]

    session.post.return_value = reply(["ABC123|https://x/a.pdf"])
    assert store.due_expiries(6_000, limit=10) == [("ABC123", "https://x/a.pdf")]
    assert sent(session) == ["ZRANGEBYSCORE", "drops:expiry", "-inf", "6000", "LIMIT", "0", "10"]

    store.untrack_expiry("ABC123", "https://x/a.pdf")
    assert sent(session) == ["ZREM", "drops:expiry", "ABC123|https://x/a.pdf"]
