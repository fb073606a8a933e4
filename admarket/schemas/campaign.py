from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FundCampaignRequest(_CamelModel):
    # Loosely typed so missing / non-numeric values get field-specific errors
    campaign_id: str | None = None
    questions: list[str] | None = None
    answers: list[str] | None = None
    satoshis_balance: Any = None
    reward_per_answer: Any = None


class FundCampaignResponse(_CamelModel):
    success: bool = True
    message: str = "Campaign funded successfully"
    satoshis_balance: int
    reward_per_answer: int


class FundingRecordsRequest(BaseModel):
    ids: list[str]


class FundingRecordOut(_CamelModel):
    campaign_id: str
    questions: list[str]
    answers: list[str]
    satoshis_balance: int
    reward_per_answer: int
    txid: str
    created_at: str | None = None


class FundingRecordsResponse(_CamelModel):
    success: bool = True
    funding_records: list[FundingRecordOut]


class FundedAdsResponse(BaseModel):
    success: bool = True
    ads: list[str]


class SubmitAnswersRequest(_CamelModel):
    ad_id: str | None = None
    answers: list[str] | None = None
    public_key: str | None = Field(default=None, max_length=130)


class SubmitAnswersResponse(_CamelModel):
    transaction: list[int] | None
    derivation_prefix: str | None
    derivation_suffix: str | None
    amount: int
    sender_identity_key: str
    correct_answers: int
