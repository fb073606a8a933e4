"""Advertisement token fields: positional on the wire, named everywhere else.

Field layout (all UTF-8)::

    0 protocol marker   4 end date (ISO-8601)
    1 title             5 sponsor public key (hex)
    2 description       6 reward per correct answer (satoshis)
    3 file hash / URL   7 service URL
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone

from admarket.overlay.tokens import decode_fields, lock_fields

ADVERTISEMENT_FIELD_COUNT = 8
# Enough to recognise a token of this protocol; indexing needs all eight
ADMISSION_MIN_FIELDS = 4

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class InvalidAdvertisementToken(ValueError):
    """Raised when token fields cannot be read as an advertisement."""


def field_text(value: bytes) -> str:
    return value.decode("utf-8", errors="replace")


def has_protocol_marker(fields: list[bytes], marker: str) -> bool:
    return bool(fields) and field_text(fields[0]) == marker


def parse_end_date(value: str) -> datetime:
    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise InvalidAdvertisementToken(f"End date is not ISO-8601: {value!r}") from exc
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError as exc:
        # Offsets that push a year 1 or year 9999 date out of range
        raise InvalidAdvertisementToken(f"End date is out of range in UTC: {value!r}") from exc


def parse_reward(value: str) -> int:
    match = _LEADING_INT.match(value)
    if not match:
        raise InvalidAdvertisementToken(f"Reward is not an integer: {value!r}")
    reward = int(match.group(1))
    if reward < 0:
        raise InvalidAdvertisementToken(f"Reward cannot be negative: {reward}")
    return reward


@dataclass(frozen=True)
class AdvertisementToken:
    protocol_marker: str
    title: str
    description: str
    file_hash: str
    end_date: datetime
    sponsor: str
    reward_per_answer: int
    service_url: str

    @classmethod
    def from_fields(cls, fields: list[bytes]) -> "AdvertisementToken":
        if len(fields) < ADVERTISEMENT_FIELD_COUNT:
            raise InvalidAdvertisementToken(
                f"Expected {ADVERTISEMENT_FIELD_COUNT} token fields, got {len(fields)}"
            )
        text = [field_text(f) for f in fields[:ADVERTISEMENT_FIELD_COUNT]]
        return cls(
            protocol_marker=text[0],
            title=text[1],
            description=text[2],
            file_hash=text[3],
            end_date=parse_end_date(text[4]),
            sponsor=text[5],
            reward_per_answer=parse_reward(text[6]),
            service_url=text[7],
        )

    def to_fields(self) -> list[bytes]:
        end_date = self.end_date.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
        values = [
            self.protocol_marker,
            self.title,
            self.description,
            self.file_hash,
            end_date,
            self.sponsor,
            str(self.reward_per_answer),
            self.service_url,
        ]
        return [v.encode("utf-8") for v in values]


def decode_advertisement(script: bytes, marker: str) -> AdvertisementToken:
    """Decode a locking script into an advertisement of the given protocol."""
    try:
        fields = decode_fields(script)
    except ValueError as exc:
        raise InvalidAdvertisementToken(f"Not a push-drop token: {exc}") from exc
    if not has_protocol_marker(fields, marker):
        raise InvalidAdvertisementToken("Token does not carry the advertisement protocol marker")
    return AdvertisementToken.from_fields(fields)


def build_advertisement_script(token: AdvertisementToken, locking_public_key: bytes) -> bytes:
    return lock_fields(token.to_fields(), locking_public_key)
