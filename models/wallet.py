from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, String, func

from database import Base


class Wallet(Base):
    __tablename__ = "wallets"

    id = Column(String(64), primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    address = Column(String(128), nullable=False, index=True)
    nickname = Column(String(128), nullable=False)
    is_primary = Column(Boolean, nullable=False, default=False)
    connected_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    humanity_score = Column(Float, nullable=True)
    last_score_update = Column(DateTime(timezone=True), nullable=True)
    is_humanity_verified = Column(Boolean, nullable=True)
