"""Outputs admitted by topic managers, with the BEEF that carried them."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Index, Integer, LargeBinary, String, UniqueConstraint

from admarket.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class AdmittedOutput(Base):
    __tablename__ = "overlay_outputs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    txid = Column(String(64), nullable=False)
    output_index = Column(Integer, nullable=False)
    topic = Column(String(100), nullable=False)
    satoshis = Column(BigInteger, nullable=False, default=0)
    locking_script = Column(LargeBinary, nullable=False)
    beef = Column(LargeBinary, nullable=False)
    spent = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("txid", "output_index", "topic", name="uq_overlay_output"),
        Index("idx_overlay_output_txid", "txid"),
        Index("idx_overlay_output_topic", "topic"),
    )
