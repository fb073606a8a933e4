from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AdmittanceInstructions(_CamelModel):
    outputs_to_admit: list[int] = Field(default_factory=list)
    coins_to_retain: list[int] = Field(default_factory=list)


class TaggedBEEF(BaseModel):
    beef: str = Field(..., min_length=8, description="Hex-encoded BEEF transaction bundle")
    topics: list[str] = Field(..., min_length=1)


class LookupQuery(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    find_all: bool | None = None
    ids: list[str] | None = None
    public_key: str | None = None


class LookupQuestion(BaseModel):
    service: str
    query: LookupQuery | None = None


class UTXOReference(_CamelModel):
    txid: str
    output_index: int


class OutputListEntry(UTXOReference):
    beef: bytes

    @field_serializer("beef")
    def _beef_as_byte_array(self, value: bytes) -> list[int]:
        return list(value)


class OutputListAnswer(BaseModel):
    type: Literal["output-list"] = "output-list"
    outputs: list[OutputListEntry]

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class ReferenceListAnswer(BaseModel):
    """Answer to id / sponsor queries; sent as a bare list of references."""

    type: Literal["reference-list"] = "reference-list"
    references: list[UTXOReference]

    def to_wire(self) -> list[dict]:
        return [ref.model_dump(by_alias=True) for ref in self.references]


LookupAnswer = Annotated[Union[OutputListAnswer, ReferenceListAnswer], Field(discriminator="type")]


class ServiceMetadata(_CamelModel):
    name: str
    short_description: str
    icon_url: str | None = None
    version: str | None = None
    information_url: str | None = None
