"""
Tests for service classes: image batches, image removal, flat assignment and
the legacy address backfill.
"""

import io
import uuid

import pytest
from sqlalchemy import select
from starlette.datastructures import Headers, UploadFile

from listing_api.models.flat import Flat
from listing_api.models.user import User, UserFlat
from listing_api.services.flat import FlatService
from listing_api.services.image import ImageService
from listing_api.services.user import UserService
from listing_api.utils.exceptions import (
    BadRequestError,
    NotFoundError,
    StorageError,
    UnsupportedFileTypeError,
    ValidationError,
)
from listing_api.utils.auth import hash_password


def make_upload(filename: str, data: bytes, content_type: str = "image/png") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(data),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


async def seed_flat(db_session, **fields) -> Flat:
    flat = Flat(square=40.0, price=500, currency="GEL", street="1 Test St", **fields)
    db_session.add(flat)
    await db_session.commit()
    await db_session.refresh(flat)
    return flat


async def seed_user(db_session, email: str = "owner@example.com") -> User:
    user = User(
        email=email,
        hashed_password=hash_password("secret123"),
        first_name="Giorgi",
        last_name="Kapanadze",
        age=35,
        address="7 Aghmashenebeli Ave",
        flat_ids=[],
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
def image_service(db_session, storage_registry, file_validator) -> ImageService:
    return ImageService(db_session, storage_registry, file_validator, max_images_per_request=3)


@pytest.fixture
def flat_service(db_session, storage_registry, file_validator) -> FlatService:
    return FlatService(db_session, storage_registry, file_validator, max_images_per_request=3)


class TestImageService:
    """Test the image collection mutator."""

    async def test_append_images_records_every_upload(self, image_service, db_session, memory_storage, png_bytes):
        flat = await seed_flat(db_session)

        flat = await image_service.append_images(flat.id, [
            make_upload("a.png", png_bytes),
            make_upload("b.png", png_bytes),
        ])

        assert [image.filename for image in flat.images] == ["a.png", "b.png"]
        assert [image.position for image in flat.images] == [0, 1]
        assert all(image.storage == "s3" for image in flat.images)
        assert len(memory_storage.objects) == 2

    async def test_failed_upload_discards_whole_batch(self, image_service, db_session, memory_storage, png_bytes):
        flat = await seed_flat(db_session)
        memory_storage.fail_on_filename = "bad.png"

        with pytest.raises(StorageError):
            await image_service.append_images(flat.id, [
                make_upload("good.png", png_bytes),
                make_upload("bad.png", png_bytes),
            ])

        await db_session.refresh(flat)
        assert flat.images == []
        assert memory_storage.objects == {}
        assert len(memory_storage.deleted) == 1

    async def test_invalid_file_rejected_before_any_upload(self, image_service, db_session, memory_storage, png_bytes):
        flat = await seed_flat(db_session)

        with pytest.raises(UnsupportedFileTypeError):
            await image_service.append_images(flat.id, [
                make_upload("ok.png", png_bytes),
                make_upload("notes.txt", b"hello", "text/plain"),
            ])

        assert memory_storage.objects == {}

    async def test_batch_size_limits(self, image_service, db_session, png_bytes):
        flat = await seed_flat(db_session)

        with pytest.raises(ValidationError, match="No images uploaded"):
            await image_service.append_images(flat.id, [])

        with pytest.raises(ValidationError, match="Maximum 3 images"):
            await image_service.append_images(flat.id, [make_upload(f"{i}.png", png_bytes) for i in range(4)])

    async def test_append_to_unknown_flat(self, image_service, png_bytes):
        with pytest.raises(NotFoundError):
            await image_service.append_images(uuid.uuid4(), [make_upload("a.png", png_bytes)])

    async def test_remove_image_survives_failed_byte_deletion(self, image_service, db_session, memory_storage, png_bytes):
        flat = await seed_flat(db_session)
        flat = await image_service.append_images(flat.id, [make_upload("a.png", png_bytes)])
        image_id = flat.images[0].id
        memory_storage.fail_deletes = True

        flat = await image_service.remove_image(flat.id, image_id)

        assert flat.images == []
        assert len(memory_storage.objects) == 1

    async def test_remove_routes_deletion_by_storage_tag(self, image_service, db_session, memory_storage, png_bytes):
        flat = await seed_flat(db_session)
        flat = await image_service.append_images(flat.id, [make_upload("a.png", png_bytes)])
        path = flat.images[0].path

        await image_service.remove_image(flat.id, flat.images[0].id)

        assert memory_storage.deleted == [path]

    async def test_remove_unknown_image(self, image_service, db_session):
        flat = await seed_flat(db_session)

        with pytest.raises(NotFoundError):
            await image_service.remove_image(flat.id, uuid.uuid4())


class TestFlatService:
    """Test flat creation and the legacy address backfill."""

    async def test_create_flat_with_image(self, flat_service, png_bytes):
        flat = await flat_service.create_flat(
            {"square": "55.5", "price": "1200", "currency": "usd", "address": {"street": "9 Vake St", "zip": 105}},
            make_upload("front.png", png_bytes),
        )

        assert flat.square == 55.5
        assert flat.currency == "USD"
        assert flat.street == "9 Vake St"
        assert flat.zip == "105"
        assert len(flat.images) == 1

    async def test_create_flat_requires_fields_before_storing(self, flat_service, memory_storage, png_bytes):
        with pytest.raises(ValidationError, match="square, address.street, and price are required"):
            await flat_service.create_flat({"price": 10, "street": "x"}, make_upload("a.png", png_bytes))

        with pytest.raises(ValidationError, match="address.street is required"):
            await flat_service.create_flat({"square": 10, "price": 10, "city": "Tbilisi"}, make_upload("a.png", png_bytes))

        with pytest.raises(ValidationError, match="image file is required"):
            await flat_service.create_flat({"square": 10, "price": 10, "street": "x"}, None)

        assert memory_storage.objects == {}

    async def test_backfill_dry_run_writes_nothing(self, flat_service, db_session):
        await seed_flat(db_session, location="Legacy 1")

        report = await flat_service.backfill_legacy_addresses(dry_run=True)

        assert report["matched"] == 1
        assert report["location_cleared"] == 1
        assert report["street_backfilled"] == 0
        assert report["dry_run"] is True

        rows = (await db_session.execute(select(Flat.location))).scalars().all()
        assert rows == ["Legacy 1"]

    async def test_backfill_fills_blank_street_and_clears_location(self, flat_service, db_session):
        blank = Flat(square=30.0, price=100, street="  ", location=" Old Road 4 ")
        kept = Flat(square=30.0, price=100, street="Kept St", location="Ignored")
        untouched = Flat(square=30.0, price=100, street="Plain St", location="   ")
        db_session.add_all([blank, kept, untouched])
        await db_session.commit()
        blank_id, kept_id = blank.id, kept.id

        report = await flat_service.backfill_legacy_addresses()

        assert report["matched"] == 2
        assert report["street_backfilled"] == 1
        assert report["location_cleared"] == 2

        refreshed = {
            flat.id: flat
            for flat in (await db_session.execute(select(Flat))).scalars().all()
        }
        assert refreshed[blank_id].street == "Old Road 4"
        assert refreshed[blank_id].location is None
        assert refreshed[kept_id].street == "Kept St"
        assert refreshed[kept_id].location is None


class TestUserService:
    """Test flat assignment."""

    async def test_assign_flat_once(self, db_session):
        user = await seed_user(db_session)
        flat = await seed_flat(db_session)
        service = UserService(db_session)

        user = await service.assign_flat(str(user.id), str(flat.id))

        assert user.flat_ids == [str(flat.id)]
        with pytest.raises(BadRequestError, match="Flat is already assigned to this user."):
            await service.assign_flat(str(user.id), str(flat.id))

        links = (await db_session.execute(select(UserFlat))).scalars().all()
        assert len(links) == 1

    async def test_assign_flat_validation(self, db_session):
        service = UserService(db_session)
        user = await seed_user(db_session)

        with pytest.raises(ValidationError, match="user_id and flat_id are required"):
            await service.assign_flat(str(user.id), None)

        with pytest.raises(NotFoundError):
            await service.assign_flat(str(user.id), str(uuid.uuid4()))

    async def test_users_younger_than(self, db_session):
        service = UserService(db_session)
        await seed_user(db_session)

        assert len(await service.users_younger_than(None)) == 1
        assert len(await service.users_younger_than(40)) == 1
        with pytest.raises(NotFoundError, match="No users found"):
            await service.users_younger_than(35)
