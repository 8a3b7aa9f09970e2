from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, String, Text, func

from database import Base


class Document(Base):
    __tablename__ = "documents"

    id = Column(String(64), primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    loan_request_id = Column(String(64), ForeignKey("loan_requests.id", ondelete="SET NULL"), nullable=True, index=True)
    vault_ref = Column(String(256), nullable=True)
    filename = Column(String(512), nullable=False)
    category = Column(String(64), nullable=False)
    uploaded_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    is_deleted = Column(Boolean, nullable=False, default=False, index=True)
    # Structured vision output
    document_type = Column(String(256), nullable=True)
    key_details = Column(JSON, nullable=True)
    summary = Column(Text, nullable=True)
    confidence = Column(Float, nullable=True)
    # Verbatim model text, kept even when structured parsing failed
    raw_output = Column(Text, nullable=True)


class UploadHistory(Base):
    __tablename__ = "upload_history"

    id = Column(String(64), primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    action = Column(String(1024), nullable=False)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
