import re

from gallery_api.services.storage_service import SignedMethod

UPLOAD_URL = "/api/uploads/pre-signed-url"
UUID_PNG = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}\.png$")


def test_presign_upload_for_png(client, user, signer):
    response = client.post(
        UPLOAD_URL,
        json={"filename": "a.png", "contentType": "image/png", "fileSize": 1000},
    )
    assert response.status_code == 200
    payload = response.json()
    assert UUID_PNG.match(payload["filename"])
    assert payload["expiresIn"] == 3600
    assert payload["originalFilename"] == "a.png"
    assert payload["contentType"] == "image/png"
    assert payload["fileSize"] == 1000
    assert payload["presignedUrl"].startswith("https://signed.example/gallery/")

    (call,) = signer.calls
    assert call["method"] == SignedMethod.PUT
    assert call["key"] == payload["filename"]
    assert call["expires_in"] == 3600
    assert call["headers"]["Content-Type"] == "image/png"
    assert call["headers"]["Content-Length"] == "1000"
    assert call["headers"]["x-amz-meta-original-filename"] == "a.png"
    assert call["headers"]["x-amz-meta-uploaded-by"] == user["id"]
    assert call["headers"]["x-amz-meta-uploaded-at"].endswith("Z")


def test_presign_upload_generates_distinct_keys(client, user):
    body = {"filename": "a.jpg", "contentType": "image/jpeg", "fileSize": 2048}
    names = {client.post(UPLOAD_URL, json=body).json()["filename"] for _ in range(10)}
    assert len(names) == 10
    assert all(name.endswith(".jpg") for name in names)


def test_unknown_image_type_defaults_to_jpg(client, user):
    response = client.post(
        UPLOAD_URL,
        json={"filename": "a.heic", "contentType": "image/heic", "fileSize": 10},
    )
    assert response.status_code == 200
    assert response.json()["filename"].endswith(".jpg")


def test_presign_upload_rejects_large_file(client, user, signer):
    response = client.post(
        UPLOAD_URL,
        json={"filename": "a.png", "contentType": "image/png", "fileSize": 10 * 1024 * 1024 + 1},
    )
    assert response.status_code == 400
    assert response.json() == {"error": "File size exceeds 10MB limit"}
    assert signer.calls == []


def test_presign_upload_accepts_exact_size_limit(client, user):
    response = client.post(
        UPLOAD_URL,
        json={"filename": "a.png", "contentType": "image/png", "fileSize": 10 * 1024 * 1024},
    )
    assert response.status_code == 200


def test_presign_upload_rejects_non_image(client, user, signer):
    response = client.post(
        UPLOAD_URL,
        json={"filename": "notes.txt", "contentType": "text/plain", "fileSize": 10},
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Only image files are allowed"}
    assert signer.calls == []


def test_presign_upload_requires_all_fields(client, user, signer):
    for body in (
        {"contentType": "image/png", "fileSize": 10},
        {"filename": "a.png", "fileSize": 10},
        {"filename": "a.png", "contentType": "image/png"},
        {"filename": "a.png", "contentType": "image/png", "fileSize": 0},
    ):
        response = client.post(UPLOAD_URL, json=body)
        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields: filename, contentType, fileSize"}
    assert signer.calls == []


def test_presign_upload_rejects_malformed_body(client, user):
    response = client.post(
        UPLOAD_URL,
        json={"filename": "a.png", "contentType": "image/png", "fileSize": "lots"},
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid request body"}


def test_presign_upload_requires_session(client, signer):
    response = client.post(
        UPLOAD_URL,
        json={"filename": "a.png", "contentType": "image/png", "fileSize": 1000},
    )
    assert response.status_code == 401
    assert response.json() == {"error": "Authentication required"}
    assert signer.calls == []


def test_presign_upload_checks_session_before_body(client, signer):
    response = client.post(
        UPLOAD_URL,
        json={"filename": "a.png", "contentType": "image/png", "fileSize": "lots"},
    )
    assert response.status_code == 401
    assert response.json() == {"error": "Authentication required"}
    assert signer.calls == []


def test_presign_upload_keeps_non_ascii_filename(client, user):
    response = client.post(
        UPLOAD_URL,
        json={"filename": "café 写真.png", "contentType": "image/png", "fileSize": 1000},
    )
    assert response.status_code == 200
    assert response.json()["originalFilename"] == "café 写真.png"


def test_signing_failure_is_reported_as_internal_error(client, user, signer):
    signer.error = RuntimeError("credentials rejected")
    response = client.post(
        UPLOAD_URL,
        json={"filename": "a.png", "contentType": "image/png", "fileSize": 1000},
    )
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
