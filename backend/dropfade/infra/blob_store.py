# dropfade/infra/blob_store.py

import logging
import os
import re
from abc import ABC, abstractmethod
from typing import Iterator, List, Optional
from urllib.parse import unquote, urlparse

import cloudinary.api
import cloudinary.exceptions
import cloudinary.uploader
import cloudinary.utils
import requests

from dropfade.core.drop_logic import DOCUMENT_EXTENSIONS, is_document
from dropfade.core.errors import BlobFetchError, StoreUnavailable
from dropfade.models.drop import BlobRef, StoredBlob

logger = logging.getLogger(__name__)

# Tried in this order when the stored ref does not say what the blob is
RESOURCE_TYPES = ("image", "raw", "video")

FETCH_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "*/*",
    "Cache-Control": "no-cache",
}

_VERSION_SEGMENT = re.compile(r"^v\d+$")


class BlobStore(ABC):
    """Opaque binary storage addressed by an adapter-native reference"""

    @abstractmethod
    def upload(self, data: bytes, name: str, content_hint: Optional[str] = None) -> StoredBlob:
        pass

    @abstractmethod
    def fetch(self, blob_ref: BlobRef) -> bytes:
        pass

    @abstractmethod
    def delete(self, blob_ref: BlobRef) -> bool:
        """Best effort; False for a blob that is already gone"""

    @abstractmethod
    def ref_from_url(self, url: str) -> BlobRef:
        pass


class CloudinaryBlobStore(BlobStore):
    """
    Cloudinary-backed blob store.

    Credentials are passed on every SDK call instead of through
    cloudinary.config(), so two stores with different accounts can
    live in the same process.
    """

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        folder: str = "dropfade",
        timeout: float = 10.0,
        session=None,
    ):
        self.folder = folder.strip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self._credentials = {
            "cloud_name": cloud_name,
            "api_key": api_key,
            "api_secret": api_secret,
        }

    # ---------- upload / delete ----------

    def upload(self, data, name, content_hint=None):
        # Documents go through the raw path: no format conversion or
        # quality tuning may touch bytes that are only read once.
        resource_type = "raw" if is_document(name, content_hint) else "auto"
        try:
            result = cloudinary.uploader.upload(
                data,
                resource_type=resource_type,
                folder=self.folder,
                use_filename=True,
                unique_filename=True,
                type="upload",
                access_mode="public",
                filename=name,
                **self._credentials,
            )
        except Exception as e:
            logger.error("Cloudinary upload of %r failed: %s", name, e)
            raise StoreUnavailable("Blob upload failed") from e

        public_id = result.get("public_id")
        secure_url = result.get("secure_url")
        if not public_id or not secure_url:
            raise StoreUnavailable("Blob upload returned no identifier")

        logger.info("Uploaded blob %s (%s bytes, %s)", public_id, result.get("bytes"), resource_type)
        return StoredBlob(
            blob_ref=BlobRef(public_id, result.get("resource_type")),
            public_url=secure_url,
            original_filename=result.get("original_filename") or name,
            format=result.get("format"),
            size=int(result.get("bytes") or len(data)),
        )

    def delete(self, blob_ref):
        for resource_type in self._lookup_order(blob_ref):
            try:
                result = cloudinary.uploader.destroy(
                    blob_ref.public_id,
                    resource_type=resource_type,
                    invalidate=True,
                    **self._credentials,
                )
            except Exception as e:
                logger.warning("Cloudinary destroy %s (%s) failed: %s", blob_ref.public_id, resource_type, e)
                continue
            if result.get("result") == "ok":
                return True
        return False

    # ---------- fetch ----------

    def fetch(self, blob_ref):
        resource = self._resolve(blob_ref)
        resource_type = resource.get("resource_type") or blob_ref.resource_type or "image"
        fmt = (resource.get("format") or "").lower()
        document = fmt in DOCUMENT_EXTENSIONS or resource_type == "raw"

        for url in self._candidate_urls(blob_ref.public_id, resource, resource_type):
            data = self._download(url)
            if data is not None:
                return data

        # Last resort. Transformations are only acceptable for images;
        # a document must come back byte for byte or not at all.
        if document:
            fallback = self._url(blob_ref.public_id, resource_type="raw")
        elif resource_type == "image":
            fallback = self._url(blob_ref.public_id, resource_type=resource_type,
                                 fetch_format="auto", quality="auto")
        else:
            fallback = None

        if fallback:
            data = self._download(fallback)
            if data is not None:
                return data

        raise BlobFetchError(f"All download methods failed for {blob_ref.public_id}")

    def _resolve(self, blob_ref) -> dict:
        for resource_type in self._lookup_order(blob_ref):
            try:
                return cloudinary.api.resource(
                    blob_ref.public_id, resource_type=resource_type, **self._credentials
                )
            except cloudinary.exceptions.NotFound:
                continue
            except Exception as e:
                logger.warning("Cloudinary lookup %s (%s) failed: %s", blob_ref.public_id, resource_type, e)
                continue
        raise BlobFetchError(f"Blob {blob_ref.public_id} not found")

    def _candidate_urls(self, public_id, resource, resource_type) -> Iterator[str]:
        seen = set()
        for url in (
            resource.get("secure_url"),
            resource.get("url"),
            self._url(public_id, resource_type=resource_type),
        ):
            if url and url not in seen:
                seen.add(url)
                yield url

    def _url(self, public_id, **options) -> str:
        url, _ = cloudinary.utils.cloudinary_url(
            public_id, type="upload", secure=True, cloud_name=self._credentials["cloud_name"], **options
        )
        return url

    def _download(self, url) -> Optional[bytes]:
        try:
            resp = self.session.get(url, headers=FETCH_HEADERS, timeout=self.timeout)
        except requests.RequestException as e:
            logger.info("Fetch from %s failed: %s", url, e)
            return None
        if resp.status_code != 200:
            logger.info("Fetch from %s returned %s", url, resp.status_code)
            return None
        return resp.content

    @staticmethod
    def _lookup_order(blob_ref) -> List[str]:
        order = [blob_ref.resource_type] if blob_ref.resource_type else []
        return order + [t for t in RESOURCE_TYPES if t not in order]

    # ---------- identifiers ----------

    def ref_from_url(self, url):
        """
        Turn a delivery URL back into a public id.

        https://res.cloudinary.com/<cloud>/<resource_type>/upload/v171/<folder>/<name>.<ext>

        Image and video public ids carry no extension; raw ids keep it.
        """
        parts = [unquote(p) for p in urlparse(url).path.split("/") if p]
        if "upload" in parts:
            i = parts.index("upload")
            resource_type = parts[i - 1] if i > 0 else None
            rest = parts[i + 1:]
            if rest and _VERSION_SEGMENT.match(rest[0]):
                rest = rest[1:]
            if rest:
                public_id = "/".join(rest)
                if resource_type != "raw":
                    public_id = os.path.splitext(public_id)[0]
                return BlobRef(public_id, resource_type if resource_type in RESOURCE_TYPES else None)

        basename = parts[-1] if parts else url
        return BlobRef(f"{self.folder}/{os.path.splitext(basename)[0]}")


def build_blob_store(settings) -> BlobStore:
    if settings.uses_cloudinary:
        return CloudinaryBlobStore(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            folder=settings.cloudinary_folder,
            timeout=settings.store_timeout_seconds,
        )

    from dropfade.infra.memory import InMemoryBlobStore

    logger.warning("Cloudinary not configured, blobs are kept in process memory")
    return InMemoryBlobStore(folder=settings.cloudinary_folder)
