import io
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError
from PIL import Image

from profile_api import avatars, crud, image_processing
from profile_api.avatars import (
    LegacyAvatar,
    NoAvatar,
    StoredAvatar,
    avatar_reference,
    avatar_url_for_user,
    resolve_avatar_url,
)
from profile_api.exceptions import (
    FileTooLarge,
    InvalidImageData,
    StorageUnavailable,
    UnsupportedMediaType,
)

MiB = 1024 * 1024
CURRENT = "https://current.example"
LEGACY = "https://old.example/files"


def _client_error(op="PutObject"):
    return ClientError({"Error": {"Code": "InternalError", "Message": "boom"}}, op)


# ---------------------------------------------------------------------------
# Upload pipeline
# ---------------------------------------------------------------------------


def test_upload_stores_normalized_jpeg_and_returns_key(s3, make_image):
    data = make_image("PNG", (1024, 768))

    key = avatars.upload_avatar(data, "image/png", len(data), user_id=9)

    assert key.startswith("avatars/9/") and key.endswith(".jpg")
    s3.put_object.assert_called_once()
    kwargs = s3.put_object.call_args.kwargs
    assert kwargs["Bucket"] == "test-bucket"
    assert kwargs["Key"] == key
    assert kwargs["ContentType"] == "image/jpeg"
    assert kwargs["CacheControl"] == "public, max-age=31536000"
    assert kwargs["Metadata"]["user-id"] == "9"
    assert "uploaded-at" in kwargs["Metadata"]
    assert Image.open(io.BytesIO(kwargs["Body"])).size == (400, 400)


def test_two_uploads_for_same_user_get_distinct_keys(s3, make_image):
    data = make_image()
    first = avatars.upload_avatar(data, "image/jpeg", len(data), 5)
    second = avatars.upload_avatar(data, "image/jpeg", len(data), 5)
    assert first != second
    assert s3.put_object.call_count == 2


def test_oversized_upload_fails_before_transform_and_store(s3, monkeypatch):
    transform = MagicMock()
    monkeypatch.setattr(image_processing, "normalize_avatar", transform)
    payload = b"x" * (6 * MiB)

    with pytest.raises(FileTooLarge):
        avatars.upload_avatar(payload, "image/jpeg", len(payload), 1)

    transform.assert_not_called()
    s3.put_object.assert_not_called()


def test_exactly_five_mib_is_accepted_by_validation():
    avatars.validate_avatar_upload("image/png", 5 * MiB)


def test_gif_is_rejected_before_transform_and_store(s3, monkeypatch, make_image):
    transform = MagicMock()
    monkeypatch.setattr(image_processing, "normalize_avatar", transform)
    data = make_image("GIF", mode="P", color=1)

    with pytest.raises(UnsupportedMediaType):
        avatars.upload_avatar(data, "image/gif", len(data), 1)

    transform.assert_not_called()
    s3.put_object.assert_not_called()


def test_missing_content_type_is_unsupported(s3):
    with pytest.raises(UnsupportedMediaType):
        avatars.upload_avatar(b"...", None, 3, 1)


def test_undecodable_payload_is_not_stored(s3):
    with pytest.raises(InvalidImageData):
        avatars.upload_avatar(b"not an image", "image/jpeg", 12, 1)
    s3.put_object.assert_not_called()


@pytest.mark.parametrize("error", [_client_error(), EndpointConnectionError(endpoint_url="https://r2")])
def test_store_failure_is_storage_unavailable(s3, make_image, error):
    s3.put_object.side_effect = error
    data = make_image()
    with pytest.raises(StorageUnavailable):
        avatars.upload_avatar(data, "image/jpeg", len(data), 1)


def test_failed_upload_leaves_user_untouched(db, user, s3, make_image):
    user = crud.set_avatar_key(db, user, "avatars/1/old.jpg")
    s3.put_object.side_effect = _client_error()
    data = make_image()

    with pytest.raises(StorageUnavailable):
        avatars.upload_avatar(data, "image/jpeg", len(data), user.id)

    db.refresh(user)
    assert user.avatar_key == "avatars/1/old.jpg"


# ---------------------------------------------------------------------------
# Reference states
# ---------------------------------------------------------------------------


def test_reference_prefers_key_over_legacy_url():
    assert avatar_reference("avatars/1/a.jpg", "https://x/y.jpg") == StoredAvatar("avatars/1/a.jpg")


def test_reference_falls_back_to_legacy_then_none():
    assert avatar_reference(None, "https://x/y.jpg") == LegacyAvatar("https://x/y.jpg")
    assert avatar_reference(None, None, "Ada") == NoAvatar("Ada")
    assert avatar_reference("", "", None) == NoAvatar(None)


# ---------------------------------------------------------------------------
# URL resolution
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("legacy", [None, "https://old.example/files/avatars/9/a.jpg", "https://cdn.other/x.png"])
def test_key_wins_regardless_of_legacy_url(legacy):
    ref = avatar_reference("avatars/9/new.jpg", legacy, "Ada")
    assert resolve_avatar_url(ref, CURRENT, LEGACY) == "https://current.example/avatars/9/new.jpg"


def test_base_url_join_uses_single_slash():
    assert resolve_avatar_url(StoredAvatar("/avatars/1/a.jpg"), CURRENT + "/", LEGACY) == "https://current.example/avatars/1/a.jpg"


def test_legacy_url_on_legacy_domain_is_rewritten():
    ref = LegacyAvatar("https://old.example/files/avatars/9/a.jpg")
    assert resolve_avatar_url(ref, CURRENT, LEGACY) == "https://current.example/avatars/9/a.jpg"


def test_legacy_domain_with_trailing_slash_still_matches():
    ref = LegacyAvatar("https://old.example/files/avatars/9/a.jpg")
    assert resolve_avatar_url(ref, CURRENT, LEGACY + "/") == "https://current.example/avatars/9/a.jpg"


@pytest.mark.parametrize(
    "url",
    [
        "https://lh3.googleusercontent.com/a/photo.jpg",
        "https://old.example/filesystem/avatars/9/a.jpg",
        "https://old.example/files",
    ],
)
def test_legacy_url_elsewhere_is_returned_verbatim(url):
    assert resolve_avatar_url(LegacyAvatar(url), CURRENT, LEGACY) == url


def test_legacy_url_verbatim_when_no_legacy_domain_configured():
    url = "https://old.example/files/avatars/9/a.jpg"
    assert resolve_avatar_url(LegacyAvatar(url), CURRENT, None) == url


def test_default_avatar_encodes_display_name():
    url = resolve_avatar_url(NoAvatar("Ada Lovelace & co"), CURRENT, LEGACY, "https://ui-avatars.com/api/")
    assert url == "https://ui-avatars.com/api/?name=Ada%20Lovelace%20%26%20co&background=random&size=400"


def test_default_avatar_without_name():
    url = resolve_avatar_url(NoAvatar(None), CURRENT, LEGACY, "https://ui-avatars.com/api/")
    assert "name=User" in url


def test_resolution_is_repeatable():
    ref = LegacyAvatar("https://old.example/files/avatars/9/a.jpg")
    assert {resolve_avatar_url(ref, CURRENT, LEGACY) for _ in range(3)} == {"https://current.example/avatars/9/a.jpg"}


def test_user_without_avatar_or_name_falls_back_to_email(db):
    u = crud.create_user(db, "nobody@example.com")
    assert avatar_url_for_user(u) == "https://ui-avatars.com/api/?name=nobody%40example.com&background=random&size=400"


def test_user_with_legacy_url_is_not_written_back(db, user):
    user.avatar_url = "https://old.example/files/avatars/1/a.jpg"
    db.commit()

    assert avatar_url_for_user(user) == "https://current.example/avatars/1/a.jpg"
    db.refresh(user)
    assert user.avatar_key is None
    assert user.avatar_url == "https://old.example/files/avatars/1/a.jpg"


# ---------------------------------------------------------------------------
# Removal
# ---------------------------------------------------------------------------


def test_remove_avatar_deletes_object_and_returns_default(db, user, s3):
    crud.set_avatar_key(db, user, "avatars/1/a.jpg")

    url = avatars.remove_avatar(db, user)

    s3.delete_object.assert_called_once_with(Bucket="test-bucket", Key="avatars/1/a.jpg")
    assert user.avatar_key is None
    assert url == "https://ui-avatars.com/api/?name=Ada%20Lovelace&background=random&size=400"


def test_remove_avatar_clears_key_even_when_delete_fails(db, user, s3):
    crud.set_avatar_key(db, user, "avatars/1/a.jpg")
    s3.delete_object.side_effect = _client_error("DeleteObject")

    url = avatars.remove_avatar(db, user)

    db.refresh(user)
    assert user.avatar_key is None
    assert "ui-avatars.com" in url


def test_remove_avatar_deletes_legacy_object_in_our_bucket(db, user, s3):
    user.avatar_url = "https://old.example/files/avatars/1/legacy.jpg"
    db.commit()

    url = avatars.remove_avatar(db, user)

    s3.delete_object.assert_called_once_with(Bucket="test-bucket", Key="avatars/1/legacy.jpg")
    assert user.avatar_url is None
    assert "ui-avatars.com" in url


def test_remove_avatar_leaves_foreign_urls_alone(db, user, s3):
    user.avatar_url = "https://lh3.googleusercontent.com/a/photo.jpg"
    db.commit()

    avatars.remove_avatar(db, user)

    s3.delete_object.assert_not_called()
    assert user.avatar_url is None
