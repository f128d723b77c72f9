from sqlalchemy.orm import Session
from . import models, cleanup
from typing import Optional, List

# Users

def get_user(db: Session, user_id: int) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.id == user_id).first()

def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.email == email).first()

def create_user(db: Session, email: str, full_name: Optional[str] = None) -> models.User:
    db_user = models.User(email=email.strip().lower(), full_name=full_name)
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user

def set_avatar_key(db: Session, db_user: models.User, key: str) -> models.User:
    """Point the user at a freshly uploaded avatar.

    The previous object is left in the bucket; see cleanup.collect_stale_avatars.
    """
    db_user.avatar_key = key
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user

def clear_avatar(db: Session, db_user: models.User) -> models.User:
    db_user.avatar_key = None
    db_user.avatar_url = None
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user

def delete_user(db: Session, db_user: models.User) -> cleanup.CleanupReport:
    """Delete the user row and its files. Object-store cleanup runs first and
    never prevents the row deletion."""
    report = cleanup.cleanup_user_storage(db, db_user)
    db.delete(db_user)
    db.commit()
    return report

# Stored files

def create_stored_file(db: Session, owner: models.User, s3_key: str, filename: str, mimetype: Optional[str] = None, size: Optional[int] = None) -> models.StoredFile:
    stored = models.StoredFile(owner=owner, s3_key=s3_key, filename=filename, mimetype=mimetype, size=size)
    db.add(stored)
    db.commit()
    db.refresh(stored)
    return stored

def get_stored_file(db: Session, file_id: int) -> Optional[models.StoredFile]:
    return db.query(models.StoredFile).filter(models.StoredFile.id == file_id).first()

def list_user_files(db: Session, owner_id: int) -> List[models.StoredFile]:
    return (
        db.query(models.StoredFile)
        .filter(models.StoredFile.owner_id == owner_id)
        .order_by(models.StoredFile.created_at.desc())
        .all()
    )

def delete_stored_file(db: Session, stored: models.StoredFile) -> bool:
    """Delete a file row; removing its object is best effort. Returns whether the object went away."""
    removed = cleanup.delete_object_quietly(stored.s3_key, file_id=stored.id, user_id=stored.owner_id)
    db.delete(stored)
    db.commit()
    return removed
