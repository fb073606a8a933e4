from admarket.models.advertisement import AdvertisementRecord
from admarket.models.campaign import FundingRecord, PayoutRecord
from admarket.models.overlay_output import AdmittedOutput

__all__ = [
    "AdvertisementRecord",
    "FundingRecord",
    "PayoutRecord",
    "AdmittedOutput",
]
