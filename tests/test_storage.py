"""
Tests for the local and S3 image storage backends.
"""

from pathlib import Path

import pytest
from botocore.stub import ANY, Stubber
from httpx import ASGITransport, AsyncClient

from listing_api.main import create_app
from listing_api.services.storage import S3ImageStorage
from listing_api.utils.exceptions import StorageError
from listing_api.utils.file_utils import UploadedImage


@pytest.fixture
async def local_client(settings, user_factory):
    """Client for an app using the storage registry built from settings (local backend)."""
    application = create_app(settings)
    await application.state.database.create_tables()
    async with AsyncClient(transport=ASGITransport(app=application), base_url="http://test") as async_client:
        data = user_factory.registration_data()
        await async_client.post("/api/auth/register", json=data)
        response = await async_client.post(
            "/api/auth/login",
            json={"email": data["email"], "password": data["password"]},
        )
        async_client.headers["Authorization"] = f"Bearer {response.json()['access_token']}"
        yield async_client
    await application.state.database.dispose()


@pytest.fixture
def s3_storage() -> S3ImageStorage:
    return S3ImageStorage(
        bucket="listing-images",
        region="us-east-1",
        access_key_id="testing",
        secret_access_key="testing",
    )


class TestLocalImageStorage:
    """Test uploads written to the upload directory."""

    async def test_file_written_served_and_unlinked(self, local_client, settings, png_bytes):
        response = await local_client.post(
            "/api/flats",
            data={"square": "42", "price": "900", "street": "3 Kostava St"},
            files={"image": ("front.png", png_bytes, "image/png")},
        )

        assert response.status_code == 201
        flat = response.json()
        image = flat["images"][0]
        assert image["storage"] == "local"
        assert image["url"] == f"{settings.uploads_url_prefix}/{image['path']}"

        stored_file = Path(settings.upload_dir) / image["path"]
        assert stored_file.read_bytes() == png_bytes

        served = await local_client.get(image["url"])
        assert served.status_code == 200
        assert served.content == png_bytes

        deleted = await local_client.delete(f"/api/flats/{flat['id']}/images/{image['id']}")

        assert deleted.status_code == 200
        assert deleted.json()["images_count"] == 0
        assert not stored_file.exists()


class TestS3ImageStorage:
    """Test the bucket backend against a stubbed boto3 client."""

    async def test_save_puts_object(self, s3_storage, png_bytes):
        image = UploadedImage(filename="front.png", content_type="image/png", data=png_bytes)

        with Stubber(s3_storage._client) as stubber:
            stubber.add_response(
                "put_object",
                {"ETag": '"etag"'},
                {"Bucket": "listing-images", "Key": ANY, "Body": png_bytes, "ContentType": "image/png"},
            )
            stored = await s3_storage.save(image, "flat-1")
            stubber.assert_no_pending_responses()

        assert stored.storage == "s3"
        assert stored.bucket == "listing-images"
        assert stored.path.startswith("flats/flat-1/")
        assert stored.path.endswith(".png")
        assert stored.url == f"https://listing-images.s3.amazonaws.com/{stored.path}"
        assert stored.size == len(png_bytes)

    async def test_delete_uses_record_bucket(self, s3_storage):
        with Stubber(s3_storage._client) as stubber:
            stubber.add_response(
                "delete_object",
                {},
                {"Bucket": "archive-bucket", "Key": "flats/flat-1/a.png"},
            )
            await s3_storage.delete("flats/flat-1/a.png", bucket="archive-bucket")
            stubber.assert_no_pending_responses()

    async def test_client_errors_become_storage_errors(self, s3_storage, png_bytes):
        image = UploadedImage(filename="front.png", content_type="image/png", data=png_bytes)

        with Stubber(s3_storage._client) as stubber:
            stubber.add_client_error("put_object", service_error_code="AccessDenied", http_status_code=403)
            stubber.add_client_error("delete_object", service_error_code="NoSuchBucket", http_status_code=404)

            with pytest.raises(StorageError, match="listing-images"):
                await s3_storage.save(image, "flat-1")
            with pytest.raises(StorageError, match="flats/flat-1/a.png"):
                await s3_storage.delete("flats/flat-1/a.png")

    def test_public_url(self, s3_storage):
        custom_endpoint = S3ImageStorage(bucket="media", endpoint_url="http://minio:9000/", region="us-east-1")
        cdn = S3ImageStorage(bucket="media", public_base_url="https://cdn.example.com/", region="us-east-1")

        assert s3_storage.public_url("flats/a.png") == "https://listing-images.s3.amazonaws.com/flats/a.png"
        assert custom_endpoint.public_url("flats/a.png") == "http://minio:9000/media/flats/a.png"
        assert cdn.public_url("flats/a.png") == "https://cdn.example.com/flats/a.png"
