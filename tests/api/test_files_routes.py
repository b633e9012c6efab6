"""Integration tests for the files API."""

import json

from fastapi.testclient import TestClient

VARIANTS = {
    "thumbnail": {"operations": {"scale": {"width": 100, "height": 100}}},
    "flipped": {"operations": {"flipHorizontal": {}, "resize": {"width": 40, "height": 30}}},
}


def _upload(client: TestClient, jpeg_bytes: bytes, **form):
    data = {"storage": "memory", **form}
    return client.post(
        "/api/v1/files/upload",
        data=data,
        files={"file": ("photo.jpg", jpeg_bytes, "image/jpeg")},
    )


def test_health(client: TestClient):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_upload_without_variants(client: TestClient, mock_storage, jpeg_bytes):
    response = _upload(client, jpeg_bytes)

    assert response.status_code == 200
    data = response.json()
    assert data["filename"] == "photo.jpg"
    assert data["extension"] == "jpg"
    assert data["mime_type"] == "image/jpeg"
    assert data["size"] == len(jpeg_bytes)
    assert data["variants"] == {}
    assert "resource" not in data
    assert mock_storage.objects[data["path"]] == jpeg_bytes


def test_upload_generates_variants(client: TestClient, mock_storage, jpeg_bytes):
    response = _upload(
        client,
        jpeg_bytes,
        collection="avatar",
        model="User",
        model_id="1",
        variants=json.dumps(VARIANTS),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["collection"] == "avatar"
    assert data["model"] == "User"
    assert data["model_id"] == "1"
    assert data["path"].startswith("User/")

    for name in VARIANTS:
        variant = data["variants"][name]
        assert variant["path"]
        assert variant["path"] in mock_storage.objects
    assert list(data["variants"]["flipped"]["operations"]) == ["flipHorizontal", "resize"]


def test_upload_unknown_operation(client: TestClient, mock_storage, jpeg_bytes):
    variants = {"bad": {"operations": {"warp": {}}}}

    response = _upload(client, jpeg_bytes, variants=json.dumps(variants))

    assert response.status_code == 400
    assert "warp" in response.json()["detail"]
    assert mock_storage.writes == []


def test_upload_invalid_json(client: TestClient, jpeg_bytes):
    response = _upload(client, jpeg_bytes, variants="{not json")
    assert response.status_code == 400


def test_upload_unknown_storage(client: TestClient, jpeg_bytes):
    response = _upload(client, jpeg_bytes, storage="nowhere")
    assert response.status_code == 404


def test_regenerate_subset(client: TestClient, mock_storage, jpeg_bytes):
    uploaded = _upload(client, jpeg_bytes, variants=json.dumps(VARIANTS)).json()
    writes_before = len(mock_storage.writes)

    response = client.post(
        "/api/v1/files/variants",
        json={"file": uploaded, "only": ["thumbnail"]},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["variants"]["thumbnail"]["path"] == uploaded["variants"]["thumbnail"]["path"]
    assert len(mock_storage.writes) == writes_before + 1
    assert mock_storage.writes[-1][0] == uploaded["variants"]["thumbnail"]["path"]


def test_add_variant_to_stored_file(client: TestClient, mock_storage, jpeg_bytes):
    uploaded = _upload(client, jpeg_bytes).json()

    response = client.post(
        "/api/v1/files/variants",
        json={
            "file": uploaded,
            "variants": {"small": {"operations": {"widen": {"width": 50}}}},
        },
    )

    assert response.status_code == 200
    path = response.json()["variants"]["small"]["path"]
    assert path in mock_storage.objects
    assert mock_storage.reads == [uploaded["path"]]


def test_regenerate_unknown_variant(client: TestClient, jpeg_bytes):
    uploaded = _upload(client, jpeg_bytes, variants=json.dumps(VARIANTS)).json()

    response = client.post("/api/v1/files/variants", json={"file": uploaded, "only": ["nope"]})

    assert response.status_code == 400
    assert "nope" in response.json()["detail"]


def test_regenerate_without_path(client: TestClient, jpeg_bytes):
    uploaded = _upload(client, jpeg_bytes).json()
    uploaded["path"] = None

    response = client.post(
        "/api/v1/files/variants",
        json={"file": uploaded, "variants": {"small": {"operations": {"widen": {"width": 50}}}}},
    )

    assert response.status_code == 400


def test_regenerate_missing_object(client: TestClient, mock_storage, jpeg_bytes):
    uploaded = _upload(client, jpeg_bytes, variants=json.dumps(VARIANTS)).json()
    mock_storage.objects.pop(uploaded["path"])

    response = client.post("/api/v1/files/variants", json={"file": uploaded})

    assert response.status_code == 404


def test_upload_undecodable_image(client: TestClient, jpeg_bytes):
    variants = {"thumbnail": {"operations": {"scale": {"width": 100, "height": 100}}}}

    response = client.post(
        "/api/v1/files/upload",
        data={"storage": "memory", "variants": json.dumps(variants)},
        files={"file": ("photo.jpg", b"not an image", "image/jpeg")},
    )

    assert response.status_code == 400
    assert "Cannot decode image" in response.json()["detail"]


def test_upload_route_runs_in_threadpool():
    """Image work blocks, so the upload handler must be a plain function"""
    import inspect

    from api.files import routes

    assert not inspect.iscoroutinefunction(routes.upload_file)
