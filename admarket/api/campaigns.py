"""Ad server endpoints: campaign funding and quiz rewards."""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from admarket.api.deps import get_wallet
from admarket.core.exceptions import (
    CampaignFundingNotFoundError,
    InvalidCampaignRequestError,
    WalletUnavailableError,
)
from admarket.database import get_db
from admarket.schemas.campaign import (
    FundCampaignRequest,
    FundCampaignResponse,
    FundedAdsResponse,
    FundingRecordsRequest,
    FundingRecordsResponse,
    SubmitAnswersRequest,
    SubmitAnswersResponse,
)
from admarket.services import campaign_service
from admarket.services.wallet_client import WalletClient, WalletError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ads", tags=["campaigns"])


@router.post("/fund", response_model=FundCampaignResponse)
async def fund_campaign(req: FundCampaignRequest, db: AsyncSession = Depends(get_db)):
    """Store a campaign's quiz and satoshi balance."""
    try:
        record = await campaign_service.fund_campaign(
            db,
            req.campaign_id,
            req.questions,
            req.answers,
            req.satoshis_balance,
            req.reward_per_answer,
        )
    except campaign_service.CampaignError as e:
        raise InvalidCampaignRequestError(str(e))
    return FundCampaignResponse(
        satoshis_balance=record["satoshisBalance"],
        reward_per_answer=record["rewardPerAnswer"],
    )


@router.post("/funding-records", response_model=FundingRecordsResponse)
async def funding_records(req: FundingRecordsRequest, db: AsyncSession = Depends(get_db)):
    records = await campaign_service.get_funding_records_by_ids(db, req.ids)
    return FundingRecordsResponse(funding_records=records)


@router.get("/funded-ads", response_model=FundedAdsResponse)
async def funded_ads(db: AsyncSession = Depends(get_db)):
    return FundedAdsResponse(ads=await campaign_service.get_funded_ads(db))


@router.post("/submit-answers", response_model=SubmitAnswersResponse)
async def submit_answers(
    req: SubmitAnswersRequest,
    db: AsyncSession = Depends(get_db),
    wallet: WalletClient = Depends(get_wallet),
):
    """Score a viewer's answers and pay the reward, once per viewer per ad."""
    try:
        return await campaign_service.submit_answers(
            db, wallet, req.ad_id, req.answers, req.public_key,
        )
    except campaign_service.CampaignNotFoundError as e:
        raise CampaignFundingNotFoundError(str(e))
    except campaign_service.CampaignError as e:
        raise InvalidCampaignRequestError(str(e))
    except WalletError as e:
        logger.error("Reward payment for ad %s failed: %s", req.ad_id, e)
        raise WalletUnavailableError()
