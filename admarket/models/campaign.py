"""Campaign funding and quiz payouts."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import BigInteger, CheckConstraint, Column, DateTime, Index, Integer, String, Text

from admarket.config import settings
from admarket.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class FundingRecord(Base):
    """Quiz and satoshi balance backing one advertisement campaign."""

    __tablename__ = settings.funding_collection_name

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    campaign_id = Column(String(255), nullable=False)  # advertisement txid
    questions_json = Column(Text, nullable=False, default="[]")  # JSON array of question strings
    answers_json = Column(Text, nullable=False, default="[]")  # JSON array, same order as questions
    satoshis_balance = Column(BigInteger, nullable=False, default=0)
    reward_per_answer = Column(BigInteger, nullable=False, default=0)
    txid = Column(String(64), nullable=False, default="")  # funding tx, filled in once paid
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("reward_per_answer >= 0", name="ck_funding_reward_non_negative"),
        Index("idx_funding_campaign", "campaign_id"),
        Index("idx_funding_created", "created_at"),
    )


class PayoutRecord(Base):
    """Reward paid to one viewer for one ad. At most one per (ad_id, public_key)."""

    __tablename__ = settings.payout_collection_name

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    ad_id = Column(String(255), nullable=False)
    public_key = Column(String(130), nullable=False)
    correct_answers = Column(Integer, nullable=False, default=0)
    reward = Column(BigInteger, nullable=False, default=0)  # satoshis
    txid = Column(String(64), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_payout_ad_key", "ad_id", "public_key"),
    )
