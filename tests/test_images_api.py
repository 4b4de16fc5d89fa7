"""
Tests for the image endpoints.
"""
import io

from PIL import Image

from image_manager.config import settings


def _jpeg_bytes(size=(320, 240)):
    buffer = io.BytesIO()
    Image.new("RGB", size, (0, 90, 180)).save(buffer, format="JPEG")
    return buffer.getvalue()


def test_get_derivative(client, make_image, error_image, public_root):
    make_image("uploads/photo.jpg", size=(800, 600))

    response = client.get(
        "/v1/images/derivative",
        params={"path": "/uploads/photo.jpg", "width": 200, "height": 200, "mode": "crop-top"},
    )

    assert response.status_code == 200
    assert response.json() == {"publicPath": "/uploads/200-200/crop-top/photo.jpg", "errors": []}
    assert (public_root / "uploads" / "200-200" / "crop-top" / "photo.jpg").is_file()


def test_get_derivative_with_format(client, make_image, error_image):
    make_image("photo.jpg")

    response = client.get(
        "/v1/images/derivative",
        params={"path": "photo.jpg", "width": 100, "height": 50, "mode": "fit", "format": "webp", "quality": 70},
    )

    assert response.status_code == 200
    assert response.json()["publicPath"] == "/100-50/fit/photo.webp"


def test_get_derivative_falls_back_to_placeholder(client, error_image):
    response = client.get(
        "/v1/images/derivative",
        params={"path": "missing.jpg", "width": 200, "height": 200, "mode": "crop"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["publicPath"] == "/vendor/image-manager/200-200/crop/error.jpg"
    assert len(data["errors"]) == 1


def test_get_derivative_without_placeholder(client, public_root):
    response = client.get(
        "/v1/images/derivative",
        params={"path": "missing.jpg", "width": 200, "height": 200, "mode": "crop"},
    )

    assert response.status_code == 404
    error = response.json()["error"]
    assert error["code"] == "IMAGE_UNAVAILABLE"
    assert error["details"]["errors"][-1] == "Error image not found."


def test_get_derivative_rejects_unknown_mode(client, public_root):
    response = client.get(
        "/v1/images/derivative",
        params={"path": "photo.jpg", "width": 200, "height": 200, "mode": "stretch"},
    )

    assert response.status_code == 422


def test_get_derivative_rejects_path_traversal(client, public_root):
    response = client.get(
        "/v1/images/derivative",
        params={"path": "../../etc/passwd", "width": 200, "height": 200, "mode": "fit"},
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_INPUT"


def test_delete_image(client, make_image, error_image, public_root):
    make_image("photo.jpg")
    client.get("/v1/images/derivative", params={"path": "photo.jpg", "width": 50, "height": 50, "mode": "crop"})

    response = client.delete("/v1/images", params={"path": "photo.jpg"})

    assert response.status_code == 200
    assert sorted(response.json()["deleted"]) == ["/50-50/crop/photo.jpg", "/photo.jpg"]
    assert not (public_root / "photo.jpg").exists()


def test_upload_image(client, public_root):
    response = client.post(
        "/v1/images",
        files={"file": ("My_Photo.jpg", _jpeg_bytes(), "image/jpeg")},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["filename"] == "my-photo.jpg"
    assert data["publicPath"] == "/uploads/my-photo.jpg"
    assert data["sizeBytes"] == (public_root / "uploads" / "my-photo.jpg").stat().st_size


def test_upload_into_directory_never_overwrites(client, public_root):
    files = {"file": ("photo.jpg", _jpeg_bytes(), "image/jpeg")}

    first = client.post("/v1/images", files=files, data={"directory": "gallery"})
    second = client.post("/v1/images", files=files, data={"directory": "gallery"})

    assert first.json()["publicPath"] == "/gallery/photo.jpg"
    assert second.json()["filename"] != "photo.jpg"
    assert len(list((public_root / "gallery").iterdir())) == 2


def test_upload_rejects_unsupported_type(client, public_root):
    response = client.post(
        "/v1/images",
        files={"file": ("notes.txt", b"hello", "text/plain")},
    )

    assert response.status_code == 415
    assert response.json()["error"]["code"] == "UNSUPPORTED_MEDIA_TYPE"


def test_upload_rejects_large_file(client, public_root, monkeypatch):
    monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE_BYTES", 100)

    response = client.post(
        "/v1/images",
        files={"file": ("photo.jpg", _jpeg_bytes(), "image/jpeg")},
    )

    assert response.status_code == 413
    assert response.json()["error"]["code"] == "PAYLOAD_TOO_LARGE"
    assert list((public_root / "uploads").iterdir()) == []


def test_get_derivative_with_path_in_format_serves_placeholder(client, make_image, error_image):
    make_image("photo.jpg")

    response = client.get(
        "/v1/images/derivative",
        params={"path": "photo.jpg", "width": 200, "height": 200, "mode": "crop", "format": "png/x"},
    )

    assert response.status_code == 200
    assert response.json() == {
        "publicPath": "/vendor/image-manager/200-200/crop/error.jpg",
        "errors": ["png/x images are not supported"],
    }
