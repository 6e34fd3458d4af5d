import pytest
from fastapi.testclient import TestClient

from conftest import image_bytes
from converter.conversion.capabilities import Capabilities
from converter.conversion.service import ConversionService, get_conversion_service
from converter.main import app


@pytest.fixture
def client():
    svc = ConversionService(Capabilities(webp=False, avif=False))
    app.dependency_overrides[get_conversion_service] = lambda: svc
    yield TestClient(app)
    app.dependency_overrides.clear()


def _upload(*names_and_data):
    return [("files", (name, data, ctype)) for name, data, ctype in names_and_data]


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_formats_report_capabilities(client):
    body = client.get("/api/formats").json()
    supported = {f["value"]: f["supported"] for f in body["output"]}
    assert supported == {"jpeg": True, "png": True, "webp": False, "avif": False, "heic": False}
    assert "HEIC output is not available yet." in body["support_notes"]
    assert body["output"][0]["label"] == "JPEG (.jpg)"


def test_presets(client):
    assert client.get("/api/presets").json() == {
        "same": 1.0, "large": 0.75, "medium": 0.5, "small": 0.25, "custom": None,
    }


def test_convert_and_download(client):
    files = _upload(
        ("one.png", image_bytes("PNG"), "image/png"),
        ("two.jpg", b"definitely not a jpeg", "image/jpeg"),
        ("three.bmp", image_bytes("BMP"), "image/bmp"),
    )
    resp = client.post("/api/convert", params={"output_format": "jpeg", "size_preset": "medium"}, files=files)
    assert resp.status_code == 200
    session_id = resp.headers["X-Session-ID"]
    body = resp.json()
    assert [r["status"] for r in body["records"]] == ["completed", "failed", "completed"]
    assert body["converted"] == 2
    assert body["status"] == "Done. Converted 2 file(s)."
    assert body["last_error"]
    first = body["records"][0]
    assert first["download_name"] == "one.jpg"
    assert first["output_type"] == "image/jpeg"

    download = client.get(first["download_url"])
    assert download.status_code == 200
    assert download.headers["content-type"] == "image/jpeg"
    assert "one.jpg" in download.headers["content-disposition"]
    assert len(download.content) == first["output_size"]

    listed = client.get("/api/session/outputs", headers={"X-Session-ID": session_id}).json()
    assert [r["record_id"] for r in listed["records"]] == [r["record_id"] for r in body["records"]]

    failed = body["records"][1]
    assert failed["download_url"] is None
    assert client.get(f"/api/download/{failed['record_id']}").status_code == 404


def test_heic_output_is_per_file_failure(client):
    files = _upload(("a.png", image_bytes("PNG"), "image/png"))
    body = client.post("/api/convert", params={"output_format": "heic"}, files=files).json()
    assert body["converted"] == 0
    assert "HEIC output is not supported" in body["records"][0]["error"]


def test_unknown_preset_rejected(client):
    files = _upload(("a.png", image_bytes("PNG"), "image/png"))
    resp = client.post("/api/convert", params={"size_preset": "huge"}, files=files)
    assert resp.status_code == 400


def test_too_many_files_rejected(client, monkeypatch):
    from converter.api import routes

    monkeypatch.setattr(routes, "MAX_IMAGES_PER_UPLOAD", 1)
    files = _upload(("a.png", image_bytes("PNG"), "image/png"), ("b.png", image_bytes("PNG"), "image/png"))
    assert client.post("/api/convert", files=files).status_code == 400


def test_oversized_file_rejected(client, monkeypatch):
    from converter.api import routes

    monkeypatch.setattr(routes, "MAX_IMAGE_SIZE_BYTES", 100)
    files = _upload(("a.png", image_bytes("PNG"), "image/png"))
    assert client.post("/api/convert", files=files).status_code == 413


def test_clear_session(client):
    headers = {"X-Session-ID": "session-123"}
    files = _upload(("a.png", image_bytes("PNG"), "image/png"))
    client.post("/api/convert", params={"output_format": "png"}, files=files, headers=headers)
    cleared = client.delete("/api/session/outputs", headers=headers).json()
    assert cleared["removed"] == 1
    assert client.get("/api/session/outputs", headers=headers).json() == {"records": []}


@pytest.mark.parametrize("custom_kb", ["nan", "inf"])
def test_non_finite_custom_kb_still_converts(client, custom_kb):
    files = _upload(("a.png", image_bytes("PNG"), "image/png"))
    resp = client.post(
        "/api/convert",
        params={"output_format": "jpeg", "size_preset": "custom", "custom_kb": custom_kb},
        files=files,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["converted"] == 1
    assert body["records"][0]["target_bytes"] is None
    assert body["status"] == "Done. Converted 1 file(s)."


def test_default_output_falls_back_when_unsupported(client, monkeypatch):
    from converter.api import routes

    monkeypatch.setattr(routes, "DEFAULT_OUTPUT_FORMAT", "webp")
    assert client.get("/api/formats").json()["default_output"] == "jpeg"
    assert routes.default_output_format(Capabilities(webp=True, avif=False)) == "webp"
    monkeypatch.setattr(routes, "DEFAULT_OUTPUT_FORMAT", "heic")
    assert routes.default_output_format(Capabilities(webp=True, avif=True)) == "jpeg"


def test_convert_without_files_is_validation_error(client):
    assert client.post("/api/convert", params={"output_format": "png"}).status_code == 422
