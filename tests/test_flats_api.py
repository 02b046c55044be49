"""
API tests for flats and their image galleries.
"""

import json
import uuid

from sqlalchemy import update

from listing_api.models.flat import Flat


class TestCreateFlat:
    """Test POST /flats."""

    async def test_create_with_one_image(self, client, create_flat, memory_storage):
        flat = await create_flat(currency=" usd ")

        assert flat["square"] == 50
        assert flat["price"] == 1000
        assert flat["currency"] == "USD"
        assert flat["address"]["street"] == "1 Chavchavadze Ave"
        assert len(flat["images"]) == 1
        image = flat["images"][0]
        assert image["storage"] == "s3"
        assert image["id"]
        assert image["path"] in memory_storage.objects

    async def test_currency_defaults_to_gel(self, create_flat):
        flat = await create_flat()

        assert flat["currency"] == "GEL"

    async def test_nested_address_as_json_string(self, create_flat):
        flat = await create_flat(
            street="",
            address=json.dumps({"street": "4 Abashidze St", "city": "Tbilisi", "zip": "0179"}),
        )

        assert flat["address"] == {"street": "4 Abashidze St", "city": "Tbilisi", "state": None, "zip": "0179"}

    async def test_legacy_location(self, client, auth_headers, png_bytes):
        response = await client.post(
            "/api/flats",
            data={"square": "30", "price": "400", "location": "Old Tbilisi 3"},
            files={"image": ("a.png", png_bytes, "image/png")},
            headers=auth_headers,
        )

        assert response.status_code == 201
        assert response.json()["address"]["street"] == "Old Tbilisi 3"

    async def test_missing_required_fields(self, client, auth_headers, png_bytes):
        response = await client.post(
            "/api/flats",
            data={"square": "30"},
            files={"image": ("a.png", png_bytes, "image/png")},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "square, address.street, and price are required"

    async def test_missing_image(self, client, auth_headers):
        response = await client.post(
            "/api/flats",
            json={"square": 30, "price": 100, "address": {"street": "x"}},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert "image file is required" in response.json()["error"]["message"]

    async def test_rejects_more_than_one_image(self, client, auth_headers, png_bytes, memory_storage):
        response = await client.post(
            "/api/flats",
            data={"square": "30", "price": "100", "street": "x"},
            files=[
                ("image", ("a.png", png_bytes, "image/png")),
                ("image", ("b.png", png_bytes, "image/png")),
            ],
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert "Exactly one image file" in response.json()["error"]["message"]
        assert memory_storage.objects == {}
        assert (await client.get("/api/flats")).json()["total"] == 0

    async def test_invalid_currency(self, client, auth_headers, png_bytes, memory_storage):
        response = await client.post(
            "/api/flats",
            data={"square": "30", "price": "100", "street": "x", "currency": "JPY"},
            files={"image": ("a.png", png_bytes, "image/png")},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert memory_storage.objects == {}

    async def test_rejects_non_image(self, client, auth_headers):
        response = await client.post(
            "/api/flats",
            data={"square": "30", "price": "100", "street": "x"},
            files={"image": ("notes.txt", b"plain text", "text/plain")},
            headers=auth_headers,
        )

        assert response.status_code == 400

    async def test_requires_token(self, client, png_bytes):
        response = await client.post(
            "/api/flats",
            data={"square": "30", "price": "100", "street": "x"},
            files={"image": ("a.png", png_bytes, "image/png")},
        )

        assert response.status_code == 401


class TestListFlats:
    """Test GET /flats and GET /flats/{id}."""

    async def test_gel_filter_matches_missing_currency(self, client, create_flat, db_session):
        await create_flat(currency="USD")
        await create_flat(currency="GEL")
        legacy = await create_flat()
        await db_session.execute(update(Flat).where(Flat.id == uuid.UUID(legacy["id"])).values(currency=None))
        await db_session.commit()

        gel = (await client.get("/api/flats", params={"currency": "gel"})).json()
        usd = (await client.get("/api/flats", params={"currency": "USD"})).json()
        everything = (await client.get("/api/flats")).json()

        assert gel["total"] == 2
        assert {flat["currency"] for flat in gel["flats"]} == {"GEL", None}
        assert usd["total"] == 1
        assert everything["total"] == 3
        assert everything["flats_count"] == 3

    async def test_invalid_currency_filter(self, client):
        response = await client.get("/api/flats", params={"currency": "XYZ"})

        assert response.status_code == 400

    async def test_pagination(self, client, create_flat):
        for _ in range(3):
            await create_flat()

        page = (await client.get("/api/flats", params={"limit": 2, "skip": 2})).json()

        assert page["flats_count"] == 1
        assert page["total"] == 3

    async def test_get_flat(self, client, create_flat):
        flat = await create_flat()

        response = await client.get(f"/api/flats/{flat['id']}")

        assert response.status_code == 200
        assert response.json()["id"] == flat["id"]

    async def test_get_unknown_flat(self, client):
        response = await client.get("/api/flats/00000000-0000-0000-0000-000000000000")

        assert response.status_code == 404


class TestUpdateFlat:
    """Test PATCH /flats/{id}."""

    async def test_partial_address_update(self, client, create_flat, auth_headers):
        flat = await create_flat(city="Tbilisi")

        response = await client.patch(
            f"/api/flats/{flat['id']}",
            json={"address": {"zip": "0108"}, "price": 1500, "currency": "eur"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["address"] == {"street": "1 Chavchavadze Ave", "city": "Tbilisi", "state": None, "zip": "0108"}
        assert body["price"] == 1500
        assert body["currency"] == "EUR"

    async def test_null_address_clears_it(self, client, create_flat, auth_headers):
        flat = await create_flat()

        response = await client.patch(f"/api/flats/{flat['id']}", json={"address": None}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["address"] is None

    async def test_form_patch(self, client, create_flat, auth_headers):
        flat = await create_flat()

        response = await client.patch(
            f"/api/flats/{flat['id']}",
            data={"square": "75", "address": "null"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["square"] == 75
        assert response.json()["address"] is None

    async def test_price_above_stored_precision(self, client, create_flat, auth_headers):
        flat = await create_flat()

        response = await client.patch(f"/api/flats/{flat['id']}", json={"price": "1e10"}, headers=auth_headers)

        assert response.status_code == 400
        assert (await client.get(f"/api/flats/{flat['id']}")).json()["price"] == 1000

    async def test_invalid_square(self, client, create_flat, auth_headers):
        flat = await create_flat()

        response = await client.patch(f"/api/flats/{flat['id']}", json={"square": "big"}, headers=auth_headers)

        assert response.status_code == 400


class TestFlatImages:
    """Test POST /flats/{id}/images and DELETE /flats/{id}/images/{image_id}."""

    async def test_create_then_delete_only_image(self, client, create_flat, auth_headers, memory_storage):
        flat = await create_flat()
        image_id = flat["images"][0]["id"]

        response = await client.delete(f"/api/flats/{flat['id']}/images/{image_id}", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body == {"message": "Image deleted", "images": [], "images_count": 0}
        assert memory_storage.objects == {}

    async def test_append_images(self, client, create_flat, auth_headers, png_bytes):
        flat = await create_flat()

        response = await client.post(
            f"/api/flats/{flat['id']}/images",
            files=[
                ("images", ("side.png", png_bytes, "image/png")),
                ("images", ("back.png", png_bytes, "application/octet-stream")),
            ],
            headers=auth_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["images_count"] == 3
        assert [image["filename"] for image in body["images"]] == ["front.png", "side.png", "back.png"]

    async def test_failed_batch_stores_nothing(self, client, create_flat, auth_headers, png_bytes, memory_storage):
        flat = await create_flat()
        memory_storage.fail_on_filename = "broken.png"

        response = await client.post(
            f"/api/flats/{flat['id']}/images",
            files=[
                ("images", ("fine.png", png_bytes, "image/png")),
                ("images", ("broken.png", png_bytes, "image/png")),
            ],
            headers=auth_headers,
        )

        assert response.status_code == 500
        stored = (await client.get(f"/api/flats/{flat['id']}")).json()
        assert len(stored["images"]) == 1
        assert len(memory_storage.objects) == 1

    async def test_append_without_files(self, client, create_flat, auth_headers):
        flat = await create_flat()

        response = await client.post(f"/api/flats/{flat['id']}/images", data={"x": "1"}, headers=auth_headers)

        assert response.status_code == 400
        assert "No images uploaded" in response.json()["error"]["message"]

    async def test_delete_unknown_image(self, client, create_flat, auth_headers):
        flat = await create_flat()

        response = await client.delete(
            f"/api/flats/{flat['id']}/images/00000000-0000-0000-0000-000000000000",
            headers=auth_headers,
        )

        assert response.status_code == 404
