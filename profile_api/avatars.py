"""Avatar upload pipeline and avatar URL resolution.

Upload: validate -> normalize (image_processing) -> generate key -> store.
The pipeline only touches the object store; persisting the returned key on
the user row is the caller's job (``crud.set_avatar_key``).

Read: a user's avatar columns are classified into one reference state
(``StoredAvatar``, ``LegacyAvatar`` or ``NoAvatar``) and ``resolve_avatar_url``
turns that state into a servable URL.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union
from urllib.parse import quote

import structlog
from sqlalchemy.orm import Session

from . import cleanup, crud, image_processing, models, s3_utils, utils
from .config import (
    MAX_AVATAR_BYTES,
    AVATAR_SIZE,
    AVATAR_CACHE_CONTROL,
    S3_PUBLIC_URL,
    LEGACY_PUBLIC_URL,
    DEFAULT_AVATAR_URL,
)
from .exceptions import FileTooLarge, StorageUnavailable, UnsupportedMediaType

logger = structlog.get_logger()

DEFAULT_DISPLAY_NAME = "User"


# Upload

def validate_avatar_upload(content_type: Optional[str], size: int) -> None:
    if size > MAX_AVATAR_BYTES:
        raise FileTooLarge(f"File size exceeds {MAX_AVATAR_BYTES // (1024 * 1024)}MB limit")
    if content_type not in image_processing.ALLOWED_CONTENT_TYPES:
        raise UnsupportedMediaType()


def upload_avatar(data: bytes, content_type: Optional[str], size: int, user_id: int) -> str:
    """Run the upload pipeline for ``user_id`` and return the new object key.

    Raises FileTooLarge, UnsupportedMediaType, InvalidImageData or
    StorageUnavailable; nothing is stored when any of them is raised.
    """
    validate_avatar_upload(content_type, size)
    payload = image_processing.normalize_avatar(data, content_type)
    key = utils.generate_avatar_key(user_id)

    metadata = {
        "user-id": str(user_id),
        "uploaded-at": datetime.now(timezone.utc).isoformat(),
    }
    stored = s3_utils.put_object(
        key,
        payload,
        image_processing.OUTPUT_CONTENT_TYPE,
        cache_control=AVATAR_CACHE_CONTROL,
        metadata=metadata,
    )
    if not stored:
        raise StorageUnavailable()

    logger.info("avatar_uploaded", user_id=user_id, key=key, size=len(payload))
    return key


# URL resolution

@dataclass(frozen=True)
class StoredAvatar:
    key: str


@dataclass(frozen=True)
class LegacyAvatar:
    url: str


@dataclass(frozen=True)
class NoAvatar:
    display_name: Optional[str] = None


AvatarReference = Union[StoredAvatar, LegacyAvatar, NoAvatar]


def avatar_reference(avatar_key: Optional[str], legacy_url: Optional[str], display_name: Optional[str] = None) -> AvatarReference:
    # avatar_key always wins over the deprecated full URL
    if avatar_key:
        return StoredAvatar(avatar_key)
    if legacy_url:
        return LegacyAvatar(legacy_url)
    return NoAvatar(display_name)


def public_url(key: str, base_url: str = S3_PUBLIC_URL) -> str:
    return f"{base_url.rstrip('/')}/{key.lstrip('/')}"


def key_from_url(url: str, base_url: Optional[str]) -> Optional[str]:
    """Return the part of ``url`` after ``base_url``, or None when it lives elsewhere."""
    if not base_url:
        return None
    prefix = base_url.rstrip("/") + "/"
    if not url.startswith(prefix):
        return None
    return url[len(prefix):] or None


def default_avatar_url(display_name: Optional[str], base_url: str = DEFAULT_AVATAR_URL, size: int = AVATAR_SIZE) -> str:
    name = display_name or DEFAULT_DISPLAY_NAME
    return f"{base_url}?name={quote(name, safe='')}&background=random&size={size}"


def resolve_avatar_url(
    reference: AvatarReference,
    public_base_url: str = S3_PUBLIC_URL,
    legacy_base_url: Optional[str] = LEGACY_PUBLIC_URL,
    default_base_url: str = DEFAULT_AVATAR_URL,
) -> str:
    """Resolve a reference state to the URL clients should load.

    1. stored key -> current public base + key
    2. legacy URL -> rewritten onto the current base when it points at the
       legacy base (not persisted back), otherwise returned as-is
    3. nothing -> initials avatar for the display name
    """
    if isinstance(reference, StoredAvatar):
        return public_url(reference.key, public_base_url)

    if isinstance(reference, LegacyAvatar):
        migrated_key = key_from_url(reference.url, legacy_base_url)
        if migrated_key:
            return public_url(migrated_key, public_base_url)
        return reference.url

    return default_avatar_url(reference.display_name, default_base_url)


def avatar_url_for_user(user: models.User) -> str:
    ref = avatar_reference(user.avatar_key, user.avatar_url, user.full_name or user.email)
    return resolve_avatar_url(ref)


# Removal

def _owned_avatar_key(user: models.User) -> Optional[str]:
    """Key of the object the user's avatar columns point at, if it lives in our bucket."""
    if user.avatar_key:
        return user.avatar_key
    if user.avatar_url:
        return key_from_url(user.avatar_url, S3_PUBLIC_URL) or key_from_url(user.avatar_url, LEGACY_PUBLIC_URL)
    return None


def remove_avatar(db: Session, user: models.User) -> str:
    """Delete the user's avatar object (best effort), clear both avatar columns
    and return the default avatar URL that now applies."""
    key = _owned_avatar_key(user)
    if key:
        cleanup.delete_object_quietly(key, user_id=user.id)
    crud.clear_avatar(db, user)
    return avatar_url_for_user(user)
