import pytest
from pydantic import ValidationError as SchemaValidationError

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.schemas.profile import ProfileCreate, ProfileUpdate
from app.services.profiles import ProfileService


def _create_payload(**overrides) -> ProfileCreate:
    fields = {
        "username": "sunny_day",
        "city": "Lisbon",
        "bio": "Coffee and long walks",
        "interests": ["Music", "Travel"],
    }
    fields.update(overrides)
    return ProfileCreate(**fields)


class TestProfileSchemas:
    def test_valid_profile(self):
        payload = _create_payload(city="  Porto ", interests=["Music", "Music", " Art "])

        assert payload.city == "Porto"
        assert payload.interests == ["Music", "Art"]

    @pytest.mark.parametrize(
        "username, message",
        [
            ("ab", "at least 3 characters"),
            ("x" * 31, "less than 30 characters"),
            ("bad name!", "letters, numbers, and underscores"),
        ],
    )
    def test_username_rules(self, username, message):
        with pytest.raises(SchemaValidationError) as exc_info:
            _create_payload(username=username)
        assert message in str(exc_info.value)

    def test_required_text_fields(self):
        with pytest.raises(SchemaValidationError):
            _create_payload(city="   ")
        with pytest.raises(SchemaValidationError):
            _create_payload(bio="")

    def test_bio_length(self):
        with pytest.raises(SchemaValidationError) as exc_info:
            _create_payload(bio="b" * 501)
        assert "Bio must be less than 500 characters" in str(exc_info.value)

    def test_interests_must_not_be_empty(self):
        with pytest.raises(SchemaValidationError) as exc_info:
            _create_payload(interests=["", "  "])
        assert "at least one interest" in str(exc_info.value)

    def test_instagram_url(self):
        assert _create_payload(instagram_url="https://instagram.com/sunny").instagram_url == (
            "https://instagram.com/sunny"
        )
        with pytest.raises(SchemaValidationError):
            _create_payload(instagram_url="https://example.com/sunny")

    def test_update_allows_partial_payloads(self):
        update = ProfileUpdate(bio="New bio")
        assert update.model_dump(exclude_unset=True) == {"bio": "New bio"}


async def test_create_and_get(db):
    profile = await ProfileService.create(db, "user-1", _create_payload())

    assert profile.id == "user-1"
    assert profile.created_at is not None
    fetched = await ProfileService.get(db, "user-1")
    assert fetched.username == "sunny_day"


async def test_create_twice_is_conflict(db):
    await ProfileService.create(db, "user-1", _create_payload())

    with pytest.raises(ConflictError) as exc_info:
        await ProfileService.create(db, "user-1", _create_payload(username="other_name"))
    assert exc_info.value.code == "PROFILE_EXISTS"


async def test_username_is_unique_case_insensitively(db):
    await ProfileService.create(db, "user-1", _create_payload(username="Sunny_Day"))

    assert await ProfileService.is_username_available(db, "sunny_day") is False
    assert await ProfileService.is_username_available(db, "sunny_day", exclude_user_id="user-1") is True
    with pytest.raises(ConflictError) as exc_info:
        await ProfileService.create(db, "user-2", _create_payload(username="SUNNY_DAY"))
    assert exc_info.value.code == "USERNAME_TAKEN"


async def test_get_missing_profile(db):
    with pytest.raises(NotFoundError) as exc_info:
        await ProfileService.get(db, "ghost")
    assert exc_info.value.code == "PROFILE_NOT_FOUND"


async def test_get_all_excludes_caller(db, make_profile):
    for user_id in ("alice", "bob", "carol"):
        await make_profile(user_id, user_id)

    others = await ProfileService.get_all(db, exclude_user_id="alice")
    assert {p.id for p in others} == {"bob", "carol"}

    page = await ProfileService.get_all(db, limit=1)
    assert len(page) == 1


async def test_update_changes_only_provided_fields(db):
    await ProfileService.create(db, "user-1", _create_payload())

    updated = await ProfileService.update(db, "user-1", ProfileUpdate(city="Madrid"))

    assert updated.city == "Madrid"
    assert updated.bio == "Coffee and long walks"
    assert updated.interests == ["Music", "Travel"]


async def test_update_does_not_clear_required_fields(db):
    await ProfileService.create(db, "user-1", _create_payload())

    updated = await ProfileService.update(
        db, "user-1", ProfileUpdate(username=None, photo_url="https://cdn.example/me.jpg")
    )

    assert updated.username == "sunny_day"
    assert updated.photo_url == "https://cdn.example/me.jpg"


async def test_empty_update_is_rejected(db):
    await ProfileService.create(db, "user-1", _create_payload())

    with pytest.raises(ValidationError):
        await ProfileService.update(db, "user-1", ProfileUpdate())


async def test_update_to_taken_username(db):
    await ProfileService.create(db, "user-1", _create_payload())
    await ProfileService.create(db, "user-2", _create_payload(username="moon_night"))

    with pytest.raises(ConflictError):
        await ProfileService.update(db, "user-2", ProfileUpdate(username="Sunny_Day"))
