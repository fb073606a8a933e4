"""Overlay host: routes submitted transactions through topic managers and
keeps lookup services informed of admitted and spent outputs."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from admarket.overlay.bundles import subject_transaction
from admarket.overlay.interfaces import LookupService, TopicManager
from admarket.schemas.overlay import AdmittanceInstructions, LookupQuestion, ServiceMetadata
from admarket.services.advertisement_storage import AdvertisementStorage
from admarket.services.lookup_service import AdvertisementLookupService, LookupQueryError
from admarket.services.overlay_store import OverlayOutputStore
from admarket.services.topic_manager import AdvertisementTopicManager

logger = logging.getLogger(__name__)


class UnknownServiceError(LookupError):
    def __init__(self, kind: str, name: str):
        super().__init__(f"Unknown {kind}: {name}")
        self.kind = kind
        self.name = name


class OverlayEngine:
    def __init__(
        self,
        topic_managers: dict[str, TopicManager],
        lookup_services: dict[str, LookupService],
        store: OverlayOutputStore,
    ):
        self.topic_managers = topic_managers
        self.lookup_services = lookup_services
        self.store = store

    async def submit(self, beef: bytes, topics: list[str]) -> dict[str, AdmittanceInstructions]:
        """Run ``beef`` through the requested topics and return the STEAK.

        Raises ValueError if the bundle cannot be parsed at all.
        """
        tx = subject_transaction(beef)
        txid = tx.txid()
        spent_outpoints = [(i.source_txid, i.source_output_index) for i in tx.inputs]

        steak: dict[str, AdmittanceInstructions] = {}
        for topic in topics:
            manager = self.topic_managers.get(topic)
            if manager is None:
                logger.warning("Submission of %s names unknown topic %s", txid, topic)
                continue

            previous = await self.store.find_unspent(topic, spent_outpoints)
            previous_keys = {(o.txid, o.output_index) for o in previous}
            previous_coins = [i for i, outpoint in enumerate(spent_outpoints) if outpoint in previous_keys]

            instructions = await manager.identify_admissible_outputs(beef, previous_coins)
            admitted = [i for i in instructions.outputs_to_admit if 0 <= i < len(tx.outputs)]
            if len(admitted) != len(instructions.outputs_to_admit):
                logger.warning("Topic %s admitted out-of-range outputs of %s", topic, txid)

            await self._retire_spent(topic, spent_outpoints, previous_coins, instructions.coins_to_retain)

            for index in admitted:
                output = tx.outputs[index]
                script = output.locking_script.serialize()
                inserted = await self.store.insert_output(
                    txid, index, topic, output.satoshis, script, beef,
                )
                if not inserted:
                    logger.info("Output %s:%d already admitted to %s", txid, index, topic)
                    continue
                await self._notify_added(txid, index, script, topic)

            steak[topic] = AdmittanceInstructions(
                outputs_to_admit=admitted,
                coins_to_retain=list(instructions.coins_to_retain),
            )
        return steak

    async def _notify_added(self, txid: str, index: int, script: bytes, topic: str) -> None:
        # One failing service or output must not keep the rest from being indexed
        for name, service in self.lookup_services.items():
            try:
                await service.output_added(txid, index, script, topic)
            except Exception:
                logger.exception("Lookup service %s failed to index %s:%d", name, txid, index)

    async def _retire_spent(
        self,
        topic: str,
        spent_outpoints: list[tuple[str, int]],
        previous_coins: list[int],
        coins_to_retain: list[int],
    ) -> None:
        retained = set(coins_to_retain)
        for input_index in previous_coins:
            txid, output_index = spent_outpoints[input_index]
            await self.store.mark_spent(txid, output_index, topic)
            for service in self.lookup_services.values():
                await service.output_spent(txid, output_index, topic)
                if input_index not in retained:
                    await service.output_deleted(txid, output_index, topic)

    async def lookup(self, question: LookupQuestion):
        service = self.lookup_services.get(question.service)
        if service is None:
            raise LookupQueryError(f"Lookup service not supported: {question.service}")
        return await service.lookup(question)

    def get_topic_manager(self, name: str) -> TopicManager:
        try:
            return self.topic_managers[name]
        except KeyError:
            raise UnknownServiceError("topic manager", name) from None

    def get_lookup_service(self, name: str) -> LookupService:
        try:
            return self.lookup_services[name]
        except KeyError:
            raise UnknownServiceError("lookup service", name) from None

    async def list_topic_managers(self) -> dict[str, ServiceMetadata]:
        return {name: await tm.get_metadata() for name, tm in self.topic_managers.items()}

    async def list_lookup_services(self) -> dict[str, ServiceMetadata]:
        return {name: await ls.get_metadata() for name, ls in self.lookup_services.items()}


def build_overlay_engine(session_factory: async_sessionmaker[AsyncSession]) -> OverlayEngine:
    """Wire the advertisement topic manager and lookup service over one store."""
    store = OverlayOutputStore(session_factory)
    topic_manager = AdvertisementTopicManager()
    lookup_service = AdvertisementLookupService(AdvertisementStorage(session_factory), store)
    return OverlayEngine(
        topic_managers={topic_manager.name: topic_manager},
        lookup_services={lookup_service.name: lookup_service},
        store=store,
    )
