"""Admitted outputs and the BEEF they arrived in."""
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from admarket.models.overlay_output import AdmittedOutput

logger = logging.getLogger(__name__)


class OverlayOutputStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def insert_output(
        self,
        txid: str,
        output_index: int,
        topic: str,
        satoshis: int,
        locking_script: bytes,
        beef: bytes,
    ) -> bool:
        """Record an admitted output. Returns False if it was already known."""
        async with self._session_factory() as db:
            if await self._get(db, txid, output_index, topic) is not None:
                return False
            db.add(AdmittedOutput(
                txid=txid,
                output_index=output_index,
                topic=topic,
                satoshis=satoshis,
                locking_script=locking_script,
                beef=beef,
            ))
            await db.commit()
        return True

    async def find_output(self, txid: str, output_index: int, topic: str) -> AdmittedOutput | None:
        async with self._session_factory() as db:
            return await self._get(db, txid, output_index, topic)

    async def find_unspent(self, topic: str, outpoints: list[tuple[str, int]]) -> list[AdmittedOutput]:
        """Unspent outputs of ``topic`` among the given (txid, index) pairs."""
        if not outpoints:
            return []
        wanted = set(outpoints)
        async with self._session_factory() as db:
            result = await db.execute(
                select(AdmittedOutput).where(
                    AdmittedOutput.topic == topic,
                    AdmittedOutput.spent.is_(False),
                    AdmittedOutput.txid.in_(sorted({txid for txid, _ in wanted})),
                )
            )
            return [o for o in result.scalars().all() if (o.txid, o.output_index) in wanted]

    async def mark_spent(self, txid: str, output_index: int, topic: str) -> None:
        async with self._session_factory() as db:
            await db.execute(
                update(AdmittedOutput)
                .where(
                    AdmittedOutput.txid == txid,
                    AdmittedOutput.output_index == output_index,
                    AdmittedOutput.topic == topic,
                )
                .values(spent=True)
            )
            await db.commit()

    async def resolve_beef(self, txid: str) -> bytes | None:
        async with self._session_factory() as db:
            result = await db.execute(
                select(AdmittedOutput.beef).where(AdmittedOutput.txid == txid).limit(1)
            )
            return result.scalar_one_or_none()

    @staticmethod
    async def _get(db: AsyncSession, txid: str, output_index: int, topic: str) -> AdmittedOutput | None:
        result = await db.execute(
            select(AdmittedOutput).where(
                AdmittedOutput.txid == txid,
                AdmittedOutput.output_index == output_index,
                AdmittedOutput.topic == topic,
            )
        )
        return result.scalar_one_or_none()
