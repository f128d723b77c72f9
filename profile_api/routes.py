from fastapi import APIRouter, Depends, HTTPException, UploadFile, File
from typing import List
from sqlalchemy.orm import Session
from . import crud, schemas, auth, models, avatars
from .config import MAX_AVATAR_BYTES
from .database import get_db
from .exceptions import AvatarError

router = APIRouter()


def _user_out(user: models.User) -> dict:
    return {
        'id': user.id,
        'email': user.email,
        'full_name': user.full_name,
        'is_active': user.is_active,
        'created_at': user.created_at,
        'avatar_url': avatars.avatar_url_for_user(user),
    }


# User profile
@router.get('/users/me', response_model=schemas.UserOut)
def read_users_me(current_user: models.User = Depends(auth.get_current_user)):
    return _user_out(current_user)

@router.delete('/users/me', response_model=schemas.DeletionOut)
def delete_users_me(db: Session = Depends(get_db), current_user: models.User = Depends(auth.get_current_user)):
    report = crud.delete_user(db, current_user)
    return {'ok': True, 'storage_deleted': len(report.deleted), 'storage_failed': len(report.failed)}

@router.get('/users/{user_id}/avatar', response_model=schemas.AvatarOut)
def read_user_avatar(user_id: int, db: Session = Depends(get_db)):
    user = crud.get_user(db, user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=404, detail='User not found')
    return {'avatar_url': avatars.avatar_url_for_user(user)}


# Avatar
@router.post('/users/me/avatar', response_model=schemas.AvatarOut)
def upload_avatar(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    # Read at most one byte past the limit so oversized uploads are not buffered whole
    file.file.seek(0)
    file_bytes = file.file.read(MAX_AVATAR_BYTES + 1)
    size_bytes = file.size if file.size is not None else len(file_bytes)

    try:
        key = avatars.upload_avatar(file_bytes, file.content_type, size_bytes, current_user.id)
    except AvatarError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    user = crud.set_avatar_key(db, current_user, key)
    return {'avatar_url': avatars.avatar_url_for_user(user), 'avatar_key': key}

@router.delete('/users/me/avatar', response_model=schemas.AvatarOut)
def delete_avatar(db: Session = Depends(get_db), current_user: models.User = Depends(auth.get_current_user)):
    url = avatars.remove_avatar(db, current_user)
    return {'avatar_url': url}


# Files owned by the user
@router.get('/users/me/files', response_model=List[schemas.StoredFileOut])
def list_files(db: Session = Depends(get_db), current_user: models.User = Depends(auth.get_current_user)):
    return crud.list_user_files(db, current_user.id)

@router.delete('/files/{file_id}')
def delete_file(file_id: int, db: Session = Depends(get_db), current_user: models.User = Depends(auth.get_current_user)):
    stored = crud.get_stored_file(db, file_id)
    if not stored:
        raise HTTPException(status_code=404, detail='File not found')
    if stored.owner_id != current_user.id:
        raise HTTPException(status_code=403, detail='Not authorized')
    crud.delete_stored_file(db, stored)
    return {"ok": True}
