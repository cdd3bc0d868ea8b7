import io

from docunlock.services.r2_client import get_blob_store

from tests.conftest import KIB, MIB, fake_pdf


def test_upload_small_pdf_is_inline(client, textbook, upload):
    r = upload(900 * KIB)

    assert r.status_code == 200, r.text
    body = r.json()
    assert body["success"] is True
    section = body["section"]
    assert section["resource_id"] == "blockchain-fundamentals-001"
    assert section["title"] == "Introduction to Blockchain"
    assert section["storage_method"] == "d1_blob"
    assert section["size_bytes"] == 900 * KIB
    assert "r2_url" not in section


def test_upload_large_pdf_goes_to_bucket(client, textbook, upload, blob_store):
    r = upload(2 * MIB, section_number=4)

    section = r.json()["section"]
    assert section["storage_method"] == "r2_bucket"
    assert section["r2_url"].endswith("pdfs/blockchain-fundamentals/blockchain-fundamentals-004.pdf")
    assert "pdfs/blockchain-fundamentals/blockchain-fundamentals-004.pdf" in blob_store.objects


def test_upload_defaults_section_number_and_price(client, textbook):
    files = {"file": ("Notes.pdf", io.BytesIO(fake_pdf(KIB)), "application/pdf")}
    r = client.post("/admin/upload", files=files, data={"textbook_slug": "blockchain-fundamentals"})

    section = r.json()["section"]
    assert section["section_number"] == 1
    assert section["price_minor_units"] == 1000
    assert section["currency_code"] == "USDC"


def test_upload_too_large_without_bucket(client, textbook, upload):
    client.app.dependency_overrides[get_blob_store] = lambda: None

    r = upload(2 * MIB)

    assert r.status_code == 413
    body = r.json()
    assert body["maxSize"] == MIB
    assert body["actualSize"] == 2 * MIB


def test_upload_requires_file(client, textbook):
    r = client.post("/admin/upload", data={"textbook_slug": "blockchain-fundamentals"})
    assert r.status_code == 400
    assert r.json()["error"] == "No PDF file provided"


def test_upload_requires_slug(client, textbook):
    files = {"file": ("Notes.pdf", io.BytesIO(fake_pdf(KIB)), "application/pdf")}
    r = client.post("/admin/upload", files=files)
    assert r.status_code == 400
    assert r.json()["error"] == "textbook_slug is required"


def test_upload_unknown_textbook(client, upload):
    r = upload(KIB, slug="missing-book")
    assert r.status_code == 404
    assert r.json()["error"] == "Textbook not found"


def test_create_and_list_textbooks(client):
    r = client.post("/admin/textbooks", json={"title": "Smart Contracts 101", "author": "B. Author"})
    assert r.status_code == 200, r.text
    assert r.json()["textbook"]["slug"] == "smart-contracts-101"

    r = client.post("/admin/textbooks", json={"slug": "smart-contracts-101", "title": "Again"})
    assert r.status_code == 409

    r = client.get("/admin/textbooks")
    textbooks = r.json()["textbooks"]
    assert [t["slug"] for t in textbooks] == ["smart-contracts-101"]
    assert textbooks[0]["section_count"] == 0


def test_create_textbook_needs_title(client):
    r = client.post("/admin/textbooks", json={"slug": "no-title"})
    assert r.status_code == 400


def test_admin_section_listing_carries_slug(client, textbook, upload):
    upload(KIB, section_number=2)
    upload(2 * MIB, section_number=1)

    r = client.get("/admin/textbooks/blockchain-fundamentals/sections")

    sections = r.json()["sections"]
    assert [s["section_number"] for s in sections] == [1, 2]
    assert all(s["textbook_slug"] == "blockchain-fundamentals" for s in sections)
    assert [s["storage_method"] for s in sections] == ["r2_bucket", "d1_blob"]
    assert all("pdf_blob" not in s for s in sections)


def test_admin_routes_gated_by_key(client, test_settings):
    test_settings.admin_api_key = "s3cret"

    r = client.get("/admin/textbooks")
    assert r.status_code == 403
    assert r.json()["error"] == "Admin access required"

    r = client.get("/admin/textbooks", headers={"X-Admin-Key": "wrong"})
    assert r.status_code == 403

    r = client.get("/admin/textbooks", headers={"X-Admin-Key": "s3cret"})
    assert r.status_code == 200


def test_storage_endpoints(client, textbook, upload, blob_store):
    upload(50 * KIB, section_number=1)
    upload(700 * KIB, section_number=2)
    blob_store.put_pdf("pdfs/stale.pdf", b"old")

    r = client.get("/admin/storage-analysis")
    assert r.status_code == 200
    assert r.json()["analysis"]["d1_blobs"]["count"] == 2
    assert r.json()["breakdown"][0]["textbook_slug"] == "blockchain-fundamentals"

    r = client.post("/admin/optimize-storage")
    body = r.json()
    assert body["success"] is True
    assert body["migrated"] == 1
    assert body["details"][0]["resource_id"] == "blockchain-fundamentals-002"

    r = client.post("/admin/migrate-to-r2")
    assert r.json()["migrated_count"] == 1

    r = client.post("/admin/cleanup-orphaned")
    body = r.json()
    assert body["checked"] == 3
    assert body["cleaned"] == 1
    assert "pdfs/stale.pdf" not in blob_store.objects


def test_storage_sweeps_without_bucket(client):
    client.app.dependency_overrides[get_blob_store] = lambda: None

    r = client.post("/admin/migrate-to-r2")

    assert r.status_code == 503


def test_upload_rejects_empty_file(client, textbook):
    files = {"file": ("Empty.pdf", io.BytesIO(b""), "application/pdf")}
    r = client.post("/admin/upload", files=files, data={"textbook_slug": "blockchain-fundamentals"})

    assert r.status_code == 400
    assert r.json()["error"] == "Uploaded file is empty"
    assert client.get("/textbook/blockchain-fundamentals/sections").json() == {"sections": []}


def test_admin_routes_closed_in_production_without_key(client, test_settings):
    test_settings.app_env = "production"

    r = client.get("/admin/textbooks")
    assert r.status_code == 403

    test_settings.admin_api_key = "s3cret"
    r = client.get("/admin/textbooks", headers={"X-Admin-Key": "s3cret"})
    assert r.status_code == 200


def test_create_textbook_slug_race_is_conflict(client, monkeypatch):
    client.post("/admin/textbooks", json={"slug": "smart-contracts", "title": "Smart Contracts"})
    # the second writer passed its existence check before the first committed
    monkeypatch.setattr("docunlock.services.catalog_service.get_textbook", lambda session, slug: None)

    r = client.post("/admin/textbooks", json={"slug": "smart-contracts", "title": "Again"})

    assert r.status_code == 409
    assert r.json()["error"] == "Textbook with this slug already exists"
