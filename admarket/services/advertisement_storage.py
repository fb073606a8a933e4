"""Persistence for the advertisement lookup index.

Every query that returns live advertisements filters on ``end_date > now``,
evaluated at call time; nothing is ever deleted.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from admarket.models.advertisement import AdvertisementRecord
from admarket.services.advertisement_token import AdvertisementToken

logger = logging.getLogger(__name__)


def _now(now: datetime | None) -> datetime:
    return (now or datetime.now(timezone.utc)).astimezone(timezone.utc)


class AdvertisementStorage:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def store_record(self, txid: str, output_index: int, token: AdvertisementToken) -> bool:
        """Insert an advertisement once per outpoint. Returns False if it was already indexed."""
        async with self._session_factory() as db:
            existing = await db.execute(
                select(AdvertisementRecord.id).where(
                    AdvertisementRecord.txid == txid,
                    AdvertisementRecord.output_index == output_index,
                )
            )
            if existing.scalar_one_or_none() is not None:
                logger.info("Advertisement %s:%d already indexed", txid, output_index)
                return False

            db.add(AdvertisementRecord(
                txid=txid,
                output_index=output_index,
                title=token.title,
                description=token.description,
                file_hash=token.file_hash,
                end_date=token.end_date.astimezone(timezone.utc),
                sponsor=token.sponsor,
                reward_per_answer=token.reward_per_answer,
                service_url=token.service_url,
            ))
            try:
                await db.commit()
            except IntegrityError:
                # Lost a race with a concurrent notification for the same outpoint
                await db.rollback()
                logger.info("Advertisement %s:%d indexed concurrently", txid, output_index)
                return False
        return True

    async def find_by_txid(self, txid: str, now: datetime | None = None) -> AdvertisementRecord | None:
        async with self._session_factory() as db:
            result = await db.execute(
                select(AdvertisementRecord)
                .where(AdvertisementRecord.txid == txid, AdvertisementRecord.end_date > _now(now))
                .order_by(AdvertisementRecord.output_index)
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def find_by_file_hash(self, file_hash: str, now: datetime | None = None) -> AdvertisementRecord | None:
        async with self._session_factory() as db:
            result = await db.execute(
                select(AdvertisementRecord)
                .where(AdvertisementRecord.file_hash == file_hash, AdvertisementRecord.end_date > _now(now))
                .order_by(AdvertisementRecord.created_at)
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def find_all(self, now: datetime | None = None) -> list[AdvertisementRecord]:
        return await self._find(AdvertisementRecord.end_date > _now(now))

    async def get_expired_ads(self, now: datetime | None = None) -> list[AdvertisementRecord]:
        return await self._find(AdvertisementRecord.end_date <= _now(now))

    async def find_by_sponsor(self, sponsor: str, now: datetime | None = None) -> list[AdvertisementRecord]:
        return await self._find(
            AdvertisementRecord.sponsor == sponsor,
            AdvertisementRecord.end_date > _now(now),
        )

    async def find_by_ids(self, ids: list[str], now: datetime | None = None) -> list[AdvertisementRecord]:
        if not ids:
            return []
        return await self._find(
            AdvertisementRecord.txid.in_(ids),
            AdvertisementRecord.end_date > _now(now),
        )

    async def _find(self, *conditions) -> list[AdvertisementRecord]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(AdvertisementRecord)
                .where(*conditions)
                .order_by(AdvertisementRecord.created_at, AdvertisementRecord.output_index)
            )
            return list(result.scalars().all())
