"""Capability interfaces an overlay host drives.

Topic managers decide which outputs of a transaction belong to a topic;
lookup services are told about those outputs and answer queries over them.
Notification hooks have no-op defaults so a service only overrides what it
cares about.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from admarket.schemas.overlay import (
    AdmittanceInstructions,
    LookupAnswer,
    LookupQuestion,
    ServiceMetadata,
)


class TopicManager(ABC):
    name: str = ""

    @abstractmethod
    async def identify_admissible_outputs(
        self, beef: bytes, previous_coins: list[int]
    ) -> AdmittanceInstructions:
        ...

    async def get_documentation(self) -> str:
        return ""

    async def get_metadata(self) -> ServiceMetadata:
        return ServiceMetadata(name=self.name, short_description="")


class LookupService(ABC):
    name: str = ""

    async def output_added(
        self, txid: str, output_index: int, output_script: bytes, topic: str
    ) -> None:
        return None

    async def output_spent(self, txid: str, output_index: int, topic: str) -> None:
        return None

    async def output_deleted(self, txid: str, output_index: int, topic: str) -> None:
        return None

    @abstractmethod
    async def lookup(self, question: LookupQuestion) -> LookupAnswer:
        ...

    async def get_documentation(self) -> str:
        return ""

    async def get_metadata(self) -> ServiceMetadata:
        return ServiceMetadata(name=self.name, short_description="")
