# dropfade/clients/drop_client.py

import os
import sys

import requests

# =========================
# CONFIGURATION
# =========================

SERVER_URL = os.getenv("DROPFADE_URL", "http://127.0.0.1:8000")
DEFAULT_TIMEOUT = 10


class DropClientError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


# =========================
# DROP CLIENT
# =========================

class DropClient:
    """
    Thin client for the drop HTTP API.

    ``session`` can be any object with requests-style ``get``/``post``,
    which includes FastAPI's TestClient.
    """

    def __init__(self, base_url: str = SERVER_URL, session=None, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _check(self, resp):
        if resp.status_code >= 400:
            try:
                message = resp.json().get("error", "")
            except ValueError:
                message = resp.text
            raise DropClientError(resp.status_code, message)
        return resp

    def upload_text(self, text: str, expiry: str = "1hour") -> str:
        resp = self.session.post(
            self._url("/upload/text"),
            json={"text": text, "expiry": expiry},
            timeout=self.timeout,
        )
        return self._check(resp).json()["code"]

    def upload_file(self, data: bytes, filename: str, expiry: str = "1hour") -> str:
        resp = self.session.post(
            self._url("/upload/file"),
            files={"file": (filename, data)},
            data={"expiry": expiry},
            timeout=self.timeout,
        )
        return self._check(resp).json()["code"]

    def peek(self, code: str) -> dict:
        resp = self.session.get(self._url(f"/file/{code}"), timeout=self.timeout)
        return self._check(resp).json()["data"]

    def download(self, code: str):
        """Consume a drop. Returns ``str`` for text drops and ``bytes`` for files."""
        resp = self._check(self.session.get(self._url(f"/download/{code}"), timeout=self.timeout))
        if resp.headers.get("content-type", "").startswith("application/json"):
            body = resp.json()
            if body.get("type") == "text":
                return body["content"]
        return resp.content

    def redeem(self, code: str) -> bool:
        resp = self.session.post(
            self._url(f"/file/{code}"),
            json={"action": "download"},
            timeout=self.timeout,
        )
        return bool(self._check(resp).json().get("success"))


# =========================
# COMMAND LINE
# =========================

if __name__ == "__main__":
    client = DropClient()

    if len(sys.argv) == 3 and sys.argv[1] == "get":
        content = client.download(sys.argv[2])
        if isinstance(content, str):
            print(content)
        else:
            sys.stdout.buffer.write(content)
    elif len(sys.argv) == 3 and sys.argv[1] == "send":
        with open(sys.argv[2], "rb") as fh:
            code = client.upload_file(fh.read(), os.path.basename(sys.argv[2]))
        print(f"✅ Uploaded, access code: {code}")
    elif len(sys.argv) >= 3 and sys.argv[1] == "note":
        print(f"✅ Note saved, access code: {client.upload_text(' '.join(sys.argv[2:]))}")
    else:
        print("usage: drop_client.py send <path> | note <text...> | get <code>")
        sys.exit(2)
