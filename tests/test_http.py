import pytest

from oxima.core import http


class _Response:
    def __init__(self, body: bytes):
        self._body = body

    def read(self) -> bytes:
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


def test_http_sources_use_urlopen(monkeypatch):
    calls = []

    def fake_urlopen(url, timeout):
        calls.append((url, timeout))
        return _Response(b'{"app": {}}')

    monkeypatch.setattr(http, "urlopen", fake_urlopen)

    assert http.read_bytes_from_source("https://cdn.example/properties.json", timeout_seconds=7) == b'{"app": {}}'
    assert http.read_bytes_from_source("HTTP://cdn.example/p.json") == b'{"app": {}}'
    assert calls == [("https://cdn.example/properties.json", 7), ("HTTP://cdn.example/p.json", 30)]


def test_file_url_and_plain_path_read_from_disk(tmp_path, monkeypatch):
    path = tmp_path / "properties.json"
    path.write_bytes(b'{"app": {"name": "Oxima"}}')
    monkeypatch.setattr(http, "urlopen", lambda *a, **kw: pytest.fail("urlopen should not be used"))

    assert http.read_bytes_from_source(path.as_uri()) == b'{"app": {"name": "Oxima"}}'
    assert http.read_bytes_from_source(str(path)) == b'{"app": {"name": "Oxima"}}'


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        http.read_bytes_from_source(str(tmp_path / "absent.json"))


@pytest.mark.asyncio
async def test_fetch_document_passes_configured_timeout(monkeypatch):
    calls = []

    def fake_read(source, timeout_seconds):
        calls.append((source, timeout_seconds))
        return b"{}"

    monkeypatch.setattr(http, "read_bytes_from_source", fake_read)
    monkeypatch.setattr(http.Config, "PROPERTIES_TIMEOUT_SECONDS", 12)

    assert await http.fetch_document("assets/properties.json") == b"{}"
    assert await http.fetch_document("assets/properties.json", timeout_seconds=3) == b"{}"
    assert calls == [("assets/properties.json", 12), ("assets/properties.json", 3)]
