import pytest

from dropfade.clients.drop_client import DropClient, DropClientError


@pytest.fixture
def drop_client(client):
    return DropClient(base_url="http://testserver", session=client)


def test_text_through_client(drop_client):
    code = drop_client.upload_text("hi there", expiry="5min")
    assert drop_client.peek(code)["type"] == "text"
    assert drop_client.download(code) == "hi there"
    with pytest.raises(DropClientError) as exc:
        drop_client.download(code)
    assert exc.value.status_code == 404


def test_file_through_client(drop_client):
    code = drop_client.upload_file(b"\x89PNG data", "cat.png")
    assert drop_client.peek(code)["filename"] == "cat.png"
    assert drop_client.download(code) == b"\x89PNG data"


def test_redeem_through_client(drop_client):
    code = drop_client.upload_text("copied already")
    assert drop_client.redeem(code) is True
    with pytest.raises(DropClientError):
        drop_client.peek(code)


def test_client_surfaces_error_message(drop_client):
    with pytest.raises(DropClientError) as exc:
        drop_client.upload_text("x" * 2000)
    assert exc.value.status_code == 400
    assert "too long" in exc.value.message
