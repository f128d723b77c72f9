"""Shared fixtures.

Configuration is read from the environment at import time, so the test
values are set here before anything from ``profile_api`` is imported.
"""
import io
import os
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["S3_BUCKET_NAME"] = "test-bucket"
os.environ["S3_PUBLIC_URL"] = "https://current.example"
os.environ["LEGACY_PUBLIC_URL"] = "https://old.example/files"
os.environ["DEFAULT_AVATAR_URL"] = "https://ui-avatars.com/api/"
os.environ["JWT_SECRET"] = "test-secret"

import jwt
import pytest
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from profile_api import crud, s3_utils
from profile_api.database import Base


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def s3(monkeypatch):
    """A MagicMock standing in for the boto3 S3 client."""
    client = MagicMock()
    monkeypatch.setattr(s3_utils, "get_s3_client", lambda: client)
    return client


@pytest.fixture
def user(db):
    return crud.create_user(db, "ada@example.com", full_name="Ada Lovelace")


@pytest.fixture
def token_for():
    """Mint bearer tokens the way the account service does."""
    def _mint(email, expires_in=timedelta(minutes=5)):
        claims = {"sub": email, "exp": datetime.now(timezone.utc) + expires_in}
        return jwt.encode(claims, os.environ["JWT_SECRET"], algorithm="HS256")
    return _mint


@pytest.fixture
def make_image():
    def _make(fmt="JPEG", size=(640, 480), mode="RGB", color=(200, 30, 30)):
        if mode == "RGBA" and len(color) == 3:
            color = color + (128,)
        img = Image.new(mode, size, color)
        buf = io.BytesIO()
        img.save(buf, format=fmt)
        return buf.getvalue()
    return _make
