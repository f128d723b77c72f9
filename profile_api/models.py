from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    ForeignKey,
    DateTime,
    BigInteger,
)
from sqlalchemy.orm import relationship
from datetime import datetime
from .database import Base


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    # Object-store key of the current avatar, e.g. avatars/12/1733000000000-<hex>.jpg
    avatar_key = Column(String(500), nullable=True)
    # Deprecated: full URL persisted before avatar_key existed. Read-only.
    avatar_url = Column(String(500), nullable=True)

    files = relationship("StoredFile", back_populates="owner", cascade="all, delete-orphan")


class StoredFile(Base):
    __tablename__ = "stored_files"
    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    s3_key = Column(String, nullable=False, unique=True)
    filename = Column(String, nullable=False)
    mimetype = Column(String)
    size = Column(BigInteger)
    created_at = Column(DateTime, default=datetime.utcnow)

    owner = relationship("User", back_populates="files")
