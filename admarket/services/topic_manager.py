"""Topic manager for advertisement tokens.

Admits transaction outputs that carry a push-drop token stamped with the
advertisement protocol marker. Stateless: it never touches storage.
"""

import logging

from admarket.config import settings
from admarket.overlay.bundles import BeefError, subject_transaction
from admarket.overlay.interfaces import TopicManager
from admarket.overlay.tokens import decode_fields, looks_like_pushdrop
from admarket.schemas.overlay import AdmittanceInstructions, ServiceMetadata
from admarket.services.advertisement_token import ADMISSION_MIN_FIELDS, field_text

logger = logging.getLogger(__name__)

TOPIC_DOCUMENTATION = """# Advertisement Topic Manager

Outputs are admitted when their locking script is a push-drop token whose
first field is the advertisement protocol marker.

Token fields, in order:

1. protocol marker
2. title
3. description
4. media file reference (UHRP URL or content hash)
5. end date (ISO-8601)
6. sponsor identity public key (hex)
7. reward per correct quiz answer, in satoshis
8. service URL for funding and answer submission

Admitted advertisements are queryable through the advertisement lookup
service until their end date passes.
"""


class AdvertisementTopicManager(TopicManager):
    def __init__(
        self,
        protocol_marker: str = settings.advertisement_protocol_marker,
        name: str = settings.advertisement_topic,
    ):
        self.protocol_marker = protocol_marker
        self.name = name

    async def identify_admissible_outputs(
        self, beef: bytes, previous_coins: list[int]
    ) -> AdmittanceInstructions:
        logger.info("Received transaction for %s (%d bytes)", self.name, len(beef))
        try:
            tx = subject_transaction(beef)
        except BeefError:
            logger.exception("Could not parse BEEF for %s; admitting nothing", self.name)
            return AdmittanceInstructions()

        outputs_to_admit: list[int] = []
        for index, output in enumerate(tx.outputs):
            try:
                if self._is_admissible(index, output.locking_script.serialize()):
                    outputs_to_admit.append(index)
            except ValueError as exc:
                logger.warning("Output %d of %s rejected: %s", index, tx.txid(), exc)

        if not outputs_to_admit:
            logger.warning("No outputs admitted from %s", tx.txid())
        else:
            logger.info("Admitted %d output(s) from %s", len(outputs_to_admit), tx.txid())
        return AdmittanceInstructions(outputs_to_admit=outputs_to_admit, coins_to_retain=[])

    def _is_admissible(self, index: int, script: bytes) -> bool:
        if not looks_like_pushdrop(script):
            logger.debug("Output %d is not a push-drop token, skipping", index)
            return False

        fields = decode_fields(script)
        if len(fields) < ADMISSION_MIN_FIELDS:
            raise ValueError(
                f"token has {len(fields)} fields, need at least {ADMISSION_MIN_FIELDS}"
            )

        marker = field_text(fields[0])
        if marker != self.protocol_marker:
            logger.info("Output %d has protocol marker %r, not ours", index, marker)
            return False
        return True

    async def get_documentation(self) -> str:
        return TOPIC_DOCUMENTATION

    async def get_metadata(self) -> ServiceMetadata:
        return ServiceMetadata(
            name="Advertisement Topic Manager",
            short_description="Topic manager for advertisement content",
        )
