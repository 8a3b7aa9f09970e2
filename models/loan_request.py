from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text, func

from database import Base


class LoanRequest(Base):
    __tablename__ = "loan_requests"

    id = Column(String(64), primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Public 8-char handle used in URLs
    short_id = Column(String(8), unique=True, nullable=False, index=True)
    amount = Column(Float, nullable=False)
    duration = Column(Integer, nullable=False)
    purpose = Column(String(512), nullable=False)
    note = Column(Text, nullable=True)
    allow_assessments = Column(Boolean, nullable=False, default=True)
    status = Column(String(32), nullable=False, default="draft", index=True)
    is_published = Column(Boolean, nullable=False, default=False)
    payout_wallet_id = Column(String(64), ForeignKey("wallets.id", ondelete="SET NULL"), nullable=True)
    # On-chain proposal + funding
    blockchain_tx_hash = Column(String(80), nullable=True)
    is_on_chain = Column(Boolean, nullable=False, default=False)
    is_funded = Column(Boolean, nullable=False, default=False)
    funded_by = Column(String(128), nullable=True)
    funding_tx_hash = Column(String(80), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)
