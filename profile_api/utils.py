import secrets
import time
from typing import Optional

AVATAR_PREFIX = "avatars"
AVATAR_EXTENSION = "jpg"


def avatar_key_prefix(user_id: int) -> str:
    return f"{AVATAR_PREFIX}/{user_id}/"


def generate_avatar_key(user_id: int, timestamp_ms: Optional[int] = None) -> str:
    """Build a storage key for a new avatar of ``user_id``.

    Format: ``avatars/{user_id}/{timestamp_ms}-{32 hex chars}.jpg``. The
    random suffix comes from :mod:`secrets` (128 bits), so two keys for the
    same user never collide even within the same millisecond.

    Examples:
        generate_avatar_key(9, 1733000000000) -> "avatars/9/1733000000000-3f2a...c1.jpg"
    """
    if timestamp_ms is None:
        timestamp_ms = time.time_ns() // 1_000_000
    return f"{avatar_key_prefix(user_id)}{timestamp_ms}-{secrets.token_hex(16)}.{AVATAR_EXTENSION}"
