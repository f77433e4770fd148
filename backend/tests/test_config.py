from dropfade.core.config import Settings
from dropfade.infra.blob_store import CloudinaryBlobStore, build_blob_store
from dropfade.infra.memory import InMemoryBlobStore, InMemoryMetadataStore
from dropfade.infra.metadata_store import UpstashMetadataStore, build_metadata_store


def test_defaults(monkeypatch):
    for name in ("CODE_LENGTH", "MAX_FILE_SIZE", "UPSTASH_REDIS_REST_URL", "CLOUDINARY_CLOUD_NAME", "CORS_ORIGINS"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings.from_env()
    assert settings.code_length == 6
    assert settings.max_file_size == 5 * 1024 * 1024
    assert settings.max_text_length == 1000
    assert settings.cors_origins == ["*"]
    assert not settings.uses_upstash
    assert not settings.uses_cloudinary


def test_from_env(monkeypatch):
    monkeypatch.setenv("CODE_LENGTH", "8")
    monkeypatch.setenv("VERIFY_UNIQUE_CODES", "no")
    monkeypatch.setenv("UPSTASH_REDIS_REST_URL", "https://x.upstash.io")
    monkeypatch.setenv("UPSTASH_REDIS_REST_TOKEN", "t")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
    settings = Settings.from_env()
    assert settings.code_length == 8
    assert settings.verify_unique_codes is False
    assert settings.uses_upstash
    assert settings.cors_origins == ["https://a.example", "https://b.example"]


def test_store_builders_pick_backends():
    local = Settings()
    assert isinstance(build_metadata_store(local), InMemoryMetadataStore)
    assert isinstance(build_blob_store(local), InMemoryBlobStore)

    remote = Settings(
        upstash_url="https://x.upstash.io",
        upstash_token="t",
        cloudinary_cloud_name="demo",
        cloudinary_api_key="k",
        cloudinary_api_secret="s",
    )
    assert isinstance(build_metadata_store(remote), UpstashMetadataStore)
    assert isinstance(build_blob_store(remote), CloudinaryBlobStore)
