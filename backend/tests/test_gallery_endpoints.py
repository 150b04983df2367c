"""Tests for the gallery API endpoints.

Covers upload, listing, static retrieval and the error contract
(400/500/503 with an ``{"error": ...}`` body).
"""
import re

import pytest
from fastapi.testclient import TestClient

from corsono.config import MediaSettings
from corsono.gallery.catalog import GalleryCatalog
from corsono.gallery.router import get_catalog, set_catalog
from corsono.main import app

UUID_NAME_RE = re.compile(r"^[0-9a-f-]{36}\.(png|jpg|jpeg|webp|gif|mp4|mov)$")


def _file(field, filename, data=b"data", content_type="image/png"):
    return (field, (filename, data, content_type))


# ---------------------------------------------------------------------------
# POST /api/{namespace}/gallery/upload
# ---------------------------------------------------------------------------


class TestUpload:
    def test_upload_single_photo(self, api_client: TestClient, catalog):
        resp = api_client.post(
            "/api/corsono/gallery/upload",
            files=[_file("photos", "sunset.png", b"pixels")],
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["count"] == 1
        assert UUID_NAME_RE.match(body["saved"][0])
        assert body["rejected"] == []
        assert "message" in body
        stored = catalog.get("corsono").directory / body["saved"][0]
        assert stored.read_bytes() == b"pixels"

    def test_partial_success_then_listing(self, api_client: TestClient):
        resp = api_client.post(
            "/api/corsono/gallery/upload",
            files=[
                _file("photos", "a.jpg", content_type="image/jpeg"),
                _file("photos", "malware.exe", content_type="application/octet-stream"),
                _file("photos", "b.webp", content_type="image/webp"),
            ],
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["count"] == 2
        assert len(body["saved"]) == 2
        assert body["rejected"] == ["malware.exe"]

        listing = api_client.get("/api/corsono/gallery").json()
        assert sorted(body["saved"]) == [item["name"] for item in listing]

    def test_extra_form_fields_tolerated(self, api_client: TestClient):
        resp = api_client.post(
            "/api/corsono/gallery/upload",
            data={"caption": "holiday"},
            files=[_file("photos", "a.png"), _file("thumbnail", "t.png")],
        )

        assert resp.status_code == 200
        assert resp.json()["count"] == 1

    def test_art_gallery_uses_artwork_field(self, api_client: TestClient):
        resp = api_client.post(
            "/api/art/gallery/upload",
            files=[
                _file("artwork", "loop.gif", content_type="image/gif"),
                _file("artwork", "clip.mov", content_type="video/quicktime"),
                _file("photos", "ignored.png"),
            ],
        )

        assert resp.status_code == 200
        assert resp.json()["count"] == 2

    def test_traversal_filename_is_contained(self, api_client: TestClient, catalog):
        resp = api_client.post(
            "/api/corsono/gallery/upload",
            files=[_file("photos", "../../outside.png")],
        )

        assert resp.json()["count"] == 1
        gallery_dir = catalog.get("corsono").directory
        assert (gallery_dir / resp.json()["saved"][0]).is_file()
        assert not (gallery_dir.parent.parent / "outside.png").exists()

    def test_unknown_namespace_accepts_nothing(self, api_client: TestClient, media_root):
        resp = api_client.post(
            "/api/blog/gallery/upload",
            files=[_file("photos", "a.png")],
        )

        assert resp.status_code == 200
        assert resp.json()["count"] == 0
        assert not (media_root / "blog").exists()

    def test_non_multipart_body_is_400(self, api_client: TestClient):
        resp = api_client.post("/api/corsono/gallery/upload", json={"photos": []})

        assert resp.status_code == 400
        assert "error" in resp.json()

    def test_missing_boundary_is_400(self, api_client: TestClient):
        resp = api_client.post(
            "/api/corsono/gallery/upload",
            content=b"garbage",
            headers={"Content-Type": "multipart/form-data"},
        )

        assert resp.status_code == 400
        assert "error" in resp.json()

    def test_truncated_body_is_400(self, api_client: TestClient, catalog):
        body = (
            b"--XX\r\n"
            b'Content-Disposition: form-data; name="photos"; filename="a.png"\r\n'
            b"\r\n"
            b"abc"
        )
        resp = api_client.post(
            "/api/corsono/gallery/upload",
            content=body,
            headers={"Content-Type": "multipart/form-data; boundary=XX"},
        )

        assert resp.status_code == 400
        assert "closing boundary" in resp.json()["error"]
        assert not catalog.get("corsono").directory.exists()

    def test_hand_framed_body_is_accepted(self, api_client: TestClient):
        body = (
            b"--XX\r\n"
            b'Content-Disposition: form-data; name="photos"; filename="a.png"\r\n'
            b"Content-Type: image/png\r\n"
            b"\r\n"
            b"abc\r\n"
            b"--XX--\r\n"
        )
        resp = api_client.post(
            "/api/corsono/gallery/upload",
            content=body,
            headers={"Content-Type": "multipart/form-data; boundary=XX"},
        )

        assert resp.status_code == 200
        assert resp.json()["count"] == 1

    def test_text_value_under_upload_field_is_rejected(self, api_client: TestClient):
        resp = api_client.post(
            "/api/corsono/gallery/upload",
            data={"photos": "not a file"},
            files=[_file("thumbnail", "t.png")],
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["count"] == 0
        assert body["rejected"] == ["unnamed"]

    def test_storage_failure_is_500(self, api_client: TestClient, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_bytes(b"not a directory")
        set_catalog(GalleryCatalog.from_settings(MediaSettings(root=str(blocker))))

        resp = api_client.post(
            "/api/corsono/gallery/upload",
            files=[_file("photos", "a.png")],
        )

        assert resp.status_code == 500
        assert "error" in resp.json()


# ---------------------------------------------------------------------------
# GET /api/{namespace}/gallery
# ---------------------------------------------------------------------------


class TestListing:
    def test_empty_gallery_returns_empty_array(self, api_client: TestClient):
        resp = api_client.get("/api/corsono/gallery")

        assert resp.status_code == 200
        assert resp.json() == []

    def test_listing_sorted_with_urls(self, api_client: TestClient, catalog):
        gallery_dir = catalog.get("art").directory
        gallery_dir.mkdir(parents=True)
        for name in ("c.mp4", "a.png", "b.txt"):
            (gallery_dir / name).write_bytes(b"x")

        resp = api_client.get("/api/art/gallery")

        assert resp.json() == [
            {"name": "a.png", "url": "/images/art/a.png"},
            {"name": "c.mp4", "url": "/images/art/c.mp4"},
        ]

    def test_unknown_namespace_returns_empty_array(self, api_client: TestClient):
        resp = api_client.get("/api/blog/gallery")

        assert resp.status_code == 200
        assert resp.json() == []


# ---------------------------------------------------------------------------
# GET /images/{namespace}/{filename}
# ---------------------------------------------------------------------------


class TestStaticRetrieval:
    def test_uploaded_file_served_at_listed_url(self, api_client: TestClient):
        upload = api_client.post(
            "/api/corsono/gallery/upload",
            files=[_file("photos", "pic.png", b"\x89PNG payload")],
        )
        (entry,) = api_client.get("/api/corsono/gallery").json()
        assert entry["name"] == upload.json()["saved"][0]

        resp = api_client.get(entry["url"])

        assert resp.status_code == 200
        assert resp.content == b"\x89PNG payload"
        assert resp.headers["content-type"] == "image/png"

    def test_missing_file_is_404(self, api_client: TestClient):
        resp = api_client.get("/images/corsono/nope.png")
        assert resp.status_code == 404

    def test_disallowed_extension_not_served(self, api_client: TestClient, catalog):
        gallery_dir = catalog.get("corsono").directory
        gallery_dir.mkdir(parents=True)
        (gallery_dir / "secret.txt").write_bytes(b"x")

        resp = api_client.get("/images/corsono/secret.txt")
        assert resp.status_code == 404

    def test_unknown_namespace_is_404(self, api_client: TestClient):
        resp = api_client.get("/images/blog/a.png")
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Not configured / health
# ---------------------------------------------------------------------------


class TestNotConfigured:
    @pytest.fixture(autouse=True)
    def no_catalog(self):
        original = get_catalog()
        set_catalog(None)
        yield
        set_catalog(original)

    def test_listing_503(self):
        resp = TestClient(app).get("/api/corsono/gallery")
        assert resp.status_code == 503
        assert resp.json() == {"error": "Gallery storage not configured"}

    def test_upload_503(self):
        resp = TestClient(app).post(
            "/api/corsono/gallery/upload",
            files=[_file("photos", "a.png")],
        )
        assert resp.status_code == 503


def test_health():
    resp = TestClient(app).get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
