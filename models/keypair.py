from sqlalchemy import Column, DateTime, ForeignKey, String, func

from database import Base


class Keypair(Base):
    __tablename__ = "keypairs"

    id = Column(String(64), primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False, index=True)
    public_key = Column(String(132), nullable=False)
    private_key = Column(String(132), nullable=False)
    did = Column(String(160), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
