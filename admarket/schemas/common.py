from pydantic import BaseModel


class ErrorResponse(BaseModel):
    detail: str


class HealthResponse(BaseModel):
    status: str
    version: str
    advertisements_count: int
    live_advertisements_count: int
    funded_campaigns_count: int
    payouts_count: int
