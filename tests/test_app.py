import hashlib
import io
import os

import pytest

from app import create_app
from conftest import solid_image_bytes
from epd_pipeline import device
from epd_pipeline.config import Settings


@pytest.fixture
def settings(tmp_path):
    return Settings(upload_path=str(tmp_path / "uploads"), output_path=str(tmp_path / "out"))


@pytest.fixture
def client(settings):
    app = create_app(settings)
    app.config["TESTING"] = True
    return app.test_client()


def upload(client, data, filename="photo.PNG"):
    return client.post(
        "/upload",
        data={"image": (io.BytesIO(data), filename)},
        content_type="multipart/form-data",
    )


def test_upload_converts_and_serves_frame(client, settings, red_png):
    response = upload(client, red_png)
    assert response.status_code == 200
    body = response.get_json()

    md5 = hashlib.md5(red_png).hexdigest()
    assert body["success"] is True
    assert body["md5"] == md5
    assert body["filename"] == f"{md5}.png"
    assert body["original_filename"] == "photo.PNG"
    assert body["size"] == len(red_png)
    assert body["processing"]["stats"] == {"Red": {"index": 3, "count": 384000, "percentage": 100.0}}
    assert os.path.exists(os.path.join(settings.upload_path, f"{md5}.png"))

    frame = client.get("/image.bin")
    assert frame.status_code == 200
    assert frame.mimetype == "application/octet-stream"
    assert frame.data == bytes([0x33]) * 192000

    header = client.get("/image.h")
    assert header.data.startswith(b"const unsigned char image[] = {")
    assert client.get("/stats").get_json()["Red"]["count"] == 384000


def test_artifacts_missing_before_first_upload(client):
    assert client.get("/image.bin").status_code == 404
    assert client.get("/stats").status_code == 404


def test_missing_file_field(client):
    response = client.post("/upload", data={}, content_type="multipart/form-data")
    assert response.status_code == 400
    assert response.get_json()["success"] is False


def test_empty_filename(client):
    response = upload(client, b"", filename="")
    assert response.status_code == 400
    assert response.get_json()["success"] is False


def test_get_upload_is_rejected(client):
    response = client.get("/upload")
    assert response.status_code == 405
    assert "GET" in response.get_json()["error"]


def test_corrupt_upload_reports_decode_error(client, settings):
    response = upload(client, b"this is not a picture", filename="broken.jpg")
    assert response.status_code == 422
    body = response.get_json()
    assert body["success"] is False
    assert body["processing"]["error_kind"] == "decode"
    assert os.listdir(settings.upload_path) == []
    assert os.listdir(settings.output_path) == []


def test_frame_is_pushed_when_device_configured(tmp_path, red_png, monkeypatch):
    pushed = []

    class Accepted:
        status_code = 200

    def fake_post(url, files, headers, timeout):
        pushed.append((url, len(files["file"][1])))
        return Accepted()

    monkeypatch.setattr(device.requests, "post", fake_post)
    settings = Settings(
        upload_path=str(tmp_path / "up"),
        output_path=str(tmp_path / "out"),
        device_url="http://192.168.86.127/display",
    )
    client = create_app(settings).test_client()

    body = upload(client, red_png).get_json()
    assert body["pushed"] is True
    assert pushed == [("http://192.168.86.127/display", 192000)]


def test_index_page(client):
    response = client.get("/")
    assert response.status_code == 200
    assert b'name="image"' in response.data


def test_blue_upload_overwrites_previous_frame(client):
    upload(client, solid_image_bytes((255, 0, 0)))
    upload(client, solid_image_bytes((0, 0, 255), (400, 240)))
    assert client.get("/image.bin").data == bytes([0x55]) * 192000


def test_failed_run_keeps_upload_stored_by_earlier_request(client, settings, red_png, monkeypatch):
    from epd_pipeline.pipeline import Pipeline, PipelineResult, State

    assert upload(client, red_png).status_code == 200
    stored = os.path.join(settings.upload_path, hashlib.md5(red_png).hexdigest() + ".png")

    def disk_full(self, image_bytes, output_directory):
        return PipelineResult(state=State.FAILED, error="No space left on device", error_kind="io")

    monkeypatch.setattr(Pipeline, "process", disk_full)
    response = upload(client, red_png)

    assert response.status_code == 422
    assert response.get_json()["processing"]["error_kind"] == "io"
    assert os.path.exists(stored)
