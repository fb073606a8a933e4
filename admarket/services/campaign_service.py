"""Campaign funding and quiz reward payouts.

A campaign (keyed by its advertisement txid) is funded with a satoshi
balance and a quiz. Viewers who answer the quiz are paid
``correct answers x reward per answer`` from that balance, once per ad.

The balance update and the payout insert are separate writes.
"""
import base64
import json
import logging
import secrets
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from admarket.config import settings
from admarket.models.campaign import FundingRecord, PayoutRecord
from admarket.overlay.bundles import BeefError, subject_transaction
from admarket.overlay.tokens import p2pkh_script_for
from admarket.services.wallet_client import WalletClient, WalletError

logger = logging.getLogger(__name__)


class CampaignError(ValueError):
    """Invalid funding or answer submission."""


class CampaignNotFoundError(CampaignError):
    pass


# ---------------------------------------------------------------------------
# Funding
# ---------------------------------------------------------------------------

def _as_satoshis(value, name: str) -> int:
    if isinstance(value, bool):
        raise CampaignError(f"Invalid {name} value: {value}. Must be a number.")
    try:
        amount = int(str(value).strip())
    except (TypeError, ValueError):
        raise CampaignError(f"Invalid {name} value: {value}. Must be a number.") from None
    if amount < 0:
        raise CampaignError(f"Invalid {name} value: {value}. Must not be negative.")
    return amount


async def fund_campaign(
    db: AsyncSession,
    campaign_id: str | None,
    questions: list[str] | None,
    answers: list[str] | None,
    satoshis_balance,
    reward_per_answer,
) -> dict:
    """Validate and store a campaign's quiz and balance."""
    if not campaign_id:
        raise CampaignError("Missing campaignId in request body")
    if not questions:
        raise CampaignError("Missing questions array in request body")
    if not answers:
        raise CampaignError("Missing answers array in request body")
    if not satoshis_balance:
        raise CampaignError("Missing satoshisBalance in request body")
    if not reward_per_answer:
        raise CampaignError("Missing rewardPerAnswer in request body")
    if len(questions) != len(answers):
        raise CampaignError(
            f"Questions and answers length mismatch. "
            f"Questions: {len(questions)}, Answers: {len(answers)}"
        )

    balance = _as_satoshis(satoshis_balance, "satoshisBalance")
    reward = _as_satoshis(reward_per_answer, "rewardPerAnswer")

    record = await store_funding(db, campaign_id, questions, answers, balance, reward)
    logger.info(
        "Campaign %s funded: %d sats, %d sats per answer, %d question(s)",
        campaign_id, balance, reward, len(questions),
    )
    return funding_to_dict(record)


async def store_funding(
    db: AsyncSession,
    campaign_id: str,
    questions: list[str],
    answers: list[str],
    satoshis_balance: int,
    reward_per_answer: int,
    txid: str = "",
) -> FundingRecord:
    record = FundingRecord(
        campaign_id=campaign_id,
        questions_json=json.dumps(questions),
        answers_json=json.dumps(answers),
        satoshis_balance=satoshis_balance,
        reward_per_answer=reward_per_answer,
        txid=txid,
    )
    db.add(record)
    await db.commit()
    await db.refresh(record)
    return record


async def get_campaign_funding(db: AsyncSession, campaign_id: str) -> FundingRecord | None:
    """First funding record stored for a campaign."""
    result = await db.execute(
        select(FundingRecord)
        .where(FundingRecord.campaign_id == campaign_id)
        .order_by(FundingRecord.created_at)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_campaign_fundings(db: AsyncSession) -> list[dict]:
    result = await db.execute(select(FundingRecord).order_by(FundingRecord.created_at.desc()))
    return [funding_to_dict(r) for r in result.scalars().all()]


async def get_funding_records_by_ids(db: AsyncSession, ids: list[str]) -> list[dict]:
    if not ids:
        return []
    result = await db.execute(
        select(FundingRecord)
        .where(FundingRecord.campaign_id.in_(ids))
        .order_by(FundingRecord.created_at)
    )
    return [funding_to_dict(r) for r in result.scalars().all()]


async def get_funded_ads(db: AsyncSession) -> list[str]:
    result = await db.execute(
        select(FundingRecord.campaign_id).order_by(FundingRecord.created_at)
    )
    # dict.fromkeys keeps first-seen order
    return list(dict.fromkeys(result.scalars().all()))


async def update_campaign_balance(db: AsyncSession, campaign_id: str, new_balance: int) -> None:
    record = await get_campaign_funding(db, campaign_id)
    if record is None:
        return
    await db.execute(
        update(FundingRecord)
        .where(FundingRecord.id == record.id)
        .values(satoshis_balance=new_balance)
    )
    await db.commit()


def funding_to_dict(record: FundingRecord) -> dict:
    return {
        "campaignId": record.campaign_id,
        "questions": json.loads(record.questions_json or "[]"),
        "answers": json.loads(record.answers_json or "[]"),
        "satoshisBalance": int(record.satoshis_balance),
        "rewardPerAnswer": int(record.reward_per_answer),
        "txid": record.txid,
        "createdAt": record.created_at.isoformat() if record.created_at else None,
    }


# ---------------------------------------------------------------------------
# Payouts
# ---------------------------------------------------------------------------

async def store_payout(
    db: AsyncSession,
    ad_id: str,
    public_key: str,
    correct_answers: int,
    reward: int,
    txid: str,
) -> PayoutRecord:
    payout = PayoutRecord(
        ad_id=ad_id,
        public_key=public_key,
        correct_answers=correct_answers,
        reward=reward,
        txid=txid,
        created_at=datetime.now(timezone.utc),
    )
    db.add(payout)
    await db.commit()
    await db.refresh(payout)
    return payout


async def has_submitted_answers(db: AsyncSession, ad_id: str, public_key: str) -> bool:
    result = await db.execute(
        select(PayoutRecord.id)
        .where(PayoutRecord.ad_id == ad_id, PayoutRecord.public_key == public_key)
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


def score_answers(given: list[str], expected: list[str]) -> int:
    """Count case-insensitive matches, position by position."""
    return sum(1 for g, e in zip(given, expected) if str(g).lower() == str(e).lower())


async def submit_answers(
    db: AsyncSession,
    wallet: WalletClient,
    ad_id: str | None,
    answers: list[str] | None,
    public_key: str | None,
) -> dict:
    """Score a viewer's quiz and pay the reward through the wallet."""
    if not ad_id or not answers or not public_key:
        raise CampaignError("Missing required fields")

    if await has_submitted_answers(db, ad_id, public_key):
        raise CampaignError("You have already submitted answers for this ad")

    funding = await get_campaign_funding(db, ad_id)
    if funding is None:
        raise CampaignNotFoundError("Campaign funding not found")

    expected = json.loads(funding.answers_json or "[]")
    if len(answers) != len(expected):
        raise CampaignError("Incorrect number of answers")

    correct = score_answers(answers, expected)
    reward = correct * int(funding.reward_per_answer)
    balance = int(funding.satoshis_balance)
    if reward > balance:
        raise CampaignError("Insufficient campaign balance")

    sender_identity_key = await wallet.get_public_key(identity_key=True)

    if reward == 0:
        await store_payout(db, ad_id, public_key, correct, 0, "")
        logger.info("No correct answers from %s on ad %s; nothing paid", public_key, ad_id)
        return {
            "transaction": None,
            "derivationPrefix": None,
            "derivationSuffix": None,
            "amount": 0,
            "senderIdentityKey": sender_identity_key,
            "correctAnswers": correct,
        }

    derivation_prefix = base64.b64encode(secrets.token_bytes(10)).decode("ascii")
    derivation_suffix = base64.b64encode(secrets.token_bytes(10)).decode("ascii")
    derived_key = await wallet.get_public_key(
        protocol_id=(settings.reward_protocol_security_level, settings.reward_protocol_name),
        key_id=f"{derivation_prefix} {derivation_suffix}",
        counterparty=public_key,
    )
    locking_script = p2pkh_script_for(derived_key)

    action = await wallet.create_action(
        description=f"Advertisement quiz reward for user: {public_key}",
        outputs=[{
            "satoshis": reward,
            "lockingScript": locking_script.hex(),
            "customInstructions": json.dumps({
                "derivationPrefix": derivation_prefix,
                "derivationSuffix": derivation_suffix,
                "payee": sender_identity_key,
            }),
            "outputDescription": "Advertisement quiz reward",
        }],
        options={"randomizeOutputs": False},
    )
    tx_bytes = action["tx"]
    try:
        payment_txid = subject_transaction(tx_bytes).txid()
    except BeefError as exc:
        raise WalletError(f"Wallet returned an unreadable transaction: {exc}") from exc

    await update_campaign_balance(db, ad_id, balance - reward)
    await store_payout(db, ad_id, public_key, correct, reward, payment_txid)

    logger.info(
        "Paid %d sats to %s for %d correct answer(s) on ad %s (tx %s)",
        reward, public_key, correct, ad_id, payment_txid,
    )
    return {
        "transaction": list(tx_bytes),
        "derivationPrefix": derivation_prefix,
        "derivationSuffix": derivation_suffix,
        "amount": reward,
        "senderIdentityKey": sender_identity_key,
        "correctAnswers": correct,
    }
