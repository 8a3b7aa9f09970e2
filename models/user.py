from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, String, func
from sqlalchemy.orm import relationship

from database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True, index=True)
    # Identity-provider subject id
    subject = Column(String(256), unique=True, nullable=False, index=True)
    email = Column(String(320), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    profile = relationship("Profile", back_populates="user", uselist=False, cascade="all, delete-orphan")


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False, index=True)
    display_name = Column(String(256), nullable=False)
    avatar_url = Column(String(1024), nullable=True)
    role = Column(String(16), nullable=False, default="both")
    allow_assessments = Column(Boolean, nullable=False, default=True)
    credits = Column(Float, nullable=False, default=0)

    user = relationship("User", back_populates="profile")
