from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Integer, String

from database import Base


class AssessmentRequest(Base):
    __tablename__ = "assessment_requests"

    id = Column(String(64), primary_key=True, index=True)
    lender_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    borrower_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    loan_request_id = Column(String(64), ForeignKey("loan_requests.id", ondelete="SET NULL"), nullable=True, index=True)
    # pending -> processing -> completed, or pending -> declined
    status = Column(String(32), nullable=False, default="pending", index=True)
    fee = Column(Float, nullable=False)
    trust_score = Column(Integer, nullable=True)
    summary_bullets = Column(JSON, nullable=True)
    risk_factors = Column(JSON, nullable=True)
    recommendations = Column(JSON, nullable=True)
    requested_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    declined_at = Column(DateTime(timezone=True), nullable=True)
