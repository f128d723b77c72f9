"""Best-effort removal of stored objects when their owner goes away.

Nothing in here raises: object-store housekeeping must never block deleting
a user or a file row. Failures are logged and reported back in a
``CleanupReport`` for callers that want to look.
"""
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models, s3_utils, utils
from .config import CLEANUP_MAX_WORKERS, AVATAR_GC_GRACE_SECONDS

logger = structlog.get_logger()


@dataclass
class CleanupReport:
    deleted: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


def delete_object_quietly(key: str, **context) -> bool:
    try:
        ok = s3_utils.delete_object(key)
    except Exception as e:
        logger.error("storage_cleanup_failed", key=key, error=str(e), **context)
        return False
    if not ok:
        logger.error("storage_cleanup_failed", key=key, **context)
    return ok


def delete_objects_settled(keys: Iterable[str], **context) -> CleanupReport:
    """Delete every key concurrently and wait for all of them.

    One failed deletion does not cancel or affect the others.
    """
    keys = list(keys)
    report = CleanupReport()
    if not keys:
        return report

    workers = max(1, min(CLEANUP_MAX_WORKERS, len(keys)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        outcomes = list(pool.map(lambda k: delete_object_quietly(k, **context), keys))

    for key, ok in zip(keys, outcomes):
        (report.deleted if ok else report.failed).append(key)
    return report


def _user_file_keys(db: Session, user: models.User) -> List[str]:
    try:
        rows = db.query(models.StoredFile.s3_key).filter(models.StoredFile.owner_id == user.id).all()
    except SQLAlchemyError as e:
        # leave the session usable for the user deletion that follows
        db.rollback()
        logger.error("user_file_lookup_failed", user_id=user.id, error=str(e))
        return []
    return [row.s3_key for row in rows]


def cleanup_user_storage(db: Session, user: models.User) -> CleanupReport:
    """Remove the avatar object and every stored file object owned by ``user``.

    Called right before the user row is deleted. Partial completion is an
    accepted outcome.
    """
    keys = []
    if user.avatar_key:
        keys.append(user.avatar_key)
    keys.extend(_user_file_keys(db, user))

    report = delete_objects_settled(keys, user_id=user.id)
    logger.info(
        "user_storage_cleanup",
        user_id=user.id,
        deleted=len(report.deleted),
        failed=len(report.failed),
    )
    return report


def collect_stale_avatars(
    user_id: int,
    keep_key: Optional[str],
    grace: timedelta = timedelta(seconds=AVATAR_GC_GRACE_SECONDS),
    now: Optional[datetime] = None,
) -> CleanupReport:
    """Delete avatars superseded by newer uploads.

    Uploading never deletes the previous avatar, so old objects pile up under
    the user's prefix. Everything except ``keep_key`` that is older than
    ``grace`` is removed; younger objects may still be referenced by a request
    that has not persisted its key yet.
    """
    now = now or datetime.now(timezone.utc)
    prefix = utils.avatar_key_prefix(user_id)
    try:
        objects = s3_utils.list_objects(prefix)
    except Exception as e:
        logger.error("avatar_gc_listing_failed", user_id=user_id, prefix=prefix, error=str(e))
        return CleanupReport()

    cutoff = now - grace
    stale = [o["key"] for o in objects if o["key"] != keep_key and o["last_modified"] < cutoff]
    report = delete_objects_settled(stale, user_id=user_id)
    if stale:
        logger.info("avatar_gc", user_id=user_id, deleted=len(report.deleted), failed=len(report.failed))
    return report
