"""Advertisement lookup service.

Indexes admitted advertisement tokens and answers three query shapes, in
order of precedence: ``findAll``, ``ids`` and ``publicKey``.
"""

import logging
from datetime import datetime

from admarket.config import settings
from admarket.overlay.interfaces import LookupService
from admarket.schemas.overlay import (
    LookupQuestion,
    OutputListAnswer,
    OutputListEntry,
    ReferenceListAnswer,
    ServiceMetadata,
    UTXOReference,
)
from admarket.services.advertisement_storage import AdvertisementStorage
from admarket.services.advertisement_token import InvalidAdvertisementToken, decode_advertisement
from admarket.services.overlay_store import OverlayOutputStore

logger = logging.getLogger(__name__)

LOOKUP_DOCUMENTATION = """# Advertisement Lookup Service

Query with `{"service": "ls_advertisement", "query": {...}}` where the query
holds exactly one of:

* `{"findAll": true}`: every live advertisement, as an output list with
  the BEEF of each advertisement transaction.
* `{"ids": ["<txid>", ...]}`: live advertisements among the given
  transaction ids, as `{txid, outputIndex}` references.
* `{"publicKey": "<hex>"}`: live advertisements sponsored by that key, as
  `{txid, outputIndex}` references.

An advertisement is live while its end date is in the future.
"""


class LookupQueryError(ValueError):
    """Raised for a lookup question this service cannot answer."""


class AdvertisementLookupService(LookupService):
    def __init__(
        self,
        storage: AdvertisementStorage,
        transactions: OverlayOutputStore,
        topic: str = settings.advertisement_topic,
        name: str = settings.advertisement_lookup_service,
        protocol_marker: str = settings.advertisement_protocol_marker,
    ):
        self.storage = storage
        self.transactions = transactions
        self.topic = topic
        self.name = name
        self.protocol_marker = protocol_marker

    async def output_added(self, txid: str, output_index: int, output_script: bytes, topic: str) -> None:
        if topic != self.topic:
            logger.debug("Skipping %s:%d, topic %s is not %s", txid, output_index, topic, self.topic)
            return

        try:
            token = decode_advertisement(output_script, self.protocol_marker)
        except InvalidAdvertisementToken as exc:
            logger.warning("Not indexing %s:%d: %s", txid, output_index, exc)
            return

        try:
            stored = await self.storage.store_record(txid, output_index, token)
        except Exception:
            logger.exception("Error indexing advertisement %s:%d", txid, output_index)
            return
        if stored:
            logger.info(
                "Indexed advertisement %s:%d %r (sponsor=%s, reward=%d, ends %s)",
                txid, output_index, token.title, token.sponsor,
                token.reward_per_answer, token.end_date.isoformat(),
            )

    async def output_spent(self, txid: str, output_index: int, topic: str) -> None:
        # Validity is governed by the token's end date, not by the UTXO
        logger.debug("Output %s:%d spent on %s; index unchanged", txid, output_index, topic)

    async def output_deleted(self, txid: str, output_index: int, topic: str) -> None:
        logger.debug("Output %s:%d deleted on %s; index unchanged", txid, output_index, topic)

    async def lookup(
        self, question: LookupQuestion, now: datetime | None = None
    ) -> OutputListAnswer | ReferenceListAnswer:
        if question.query is None:
            raise LookupQueryError("A valid query must be provided!")
        if question.service != self.name:
            raise LookupQueryError(f"Lookup service not supported: {question.service}")

        query = question.query
        if query.find_all:
            ads = await self.storage.find_all(now=now)
            outputs = []
            for ad in ads:
                beef = await self.transactions.resolve_beef(ad.txid)
                if beef is None:
                    logger.warning("No stored BEEF for advertisement %s, leaving it out", ad.txid)
                    continue
                outputs.append(OutputListEntry(txid=ad.txid, output_index=ad.output_index, beef=beef))
            logger.info("findAll matched %d advertisement(s)", len(outputs))
            return OutputListAnswer(outputs=outputs)

        if query.ids is not None:
            ads = await self.storage.find_by_ids(query.ids, now=now)
            logger.info("ids lookup matched %d of %d", len(ads), len(query.ids))
            return _references(ads)

        if not query.public_key:
            raise LookupQueryError("Public key is required for advertisement lookup")

        ads = await self.storage.find_by_sponsor(query.public_key, now=now)
        logger.info("Sponsor %s has %d live advertisement(s)", query.public_key, len(ads))
        return _references(ads)

    async def get_documentation(self) -> str:
        return LOOKUP_DOCUMENTATION

    async def get_metadata(self) -> ServiceMetadata:
        return ServiceMetadata(
            name="Advertisement Lookup Service",
            short_description="Lookup service for advertisement content",
        )


def _references(ads) -> ReferenceListAnswer:
    return ReferenceListAnswer(
        references=[UTXOReference(txid=ad.txid, output_index=ad.output_index) for ad in ads]
    )
