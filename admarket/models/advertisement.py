"""Advertisements indexed from admitted overlay tokens."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, DateTime, Index, Integer, String, Text, UniqueConstraint

from admarket.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class AdvertisementRecord(Base):
    """One indexed advertisement token. Written once, never updated or deleted."""

    __tablename__ = "advertisements"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # On-chain outpoint
    txid = Column(String(64), nullable=False)
    output_index = Column(Integer, nullable=False, default=0)

    # Token fields
    title = Column(Text, nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    file_hash = Column(Text, nullable=False, default="")  # UHRP URL or content hash
    end_date = Column(DateTime(timezone=True), nullable=False)  # stored as UTC
    sponsor = Column(String(130), nullable=False)  # hex public key
    reward_per_answer = Column(BigInteger, nullable=False, default=0)  # satoshis
    service_url = Column(Text, nullable=False, default="")

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("txid", "output_index", name="uq_advertisement_outpoint"),
        Index("idx_advertisement_txid", "txid"),
        Index("idx_advertisement_sponsor", "sponsor"),
        Index("idx_advertisement_end_date", "end_date"),
        Index("idx_advertisement_file_hash", "file_hash"),
    )
