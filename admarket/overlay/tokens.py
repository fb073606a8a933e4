"""Push-then-drop tokens and reward locking scripts, via the BSV SDK.

A token locking script is laid out as::

    <locking pubkey> OP_CHECKSIG <field 0> <field 1> ... <field n> OP_2DROP ... [OP_DROP]

The fields are committed to by the script but dropped before evaluation,
so they carry metadata without changing who can spend the output.
"""

from __future__ import annotations

from bsv import PublicKey
from bsv.script import P2PKH
from bsv.transaction.pushdrop import build_lock_before_pushdrop, decode_lock_before_pushdrop

# First byte of every token script: a direct push of a 33-byte compressed key
PUSHDROP_SCRIPT_PREFIX = 0x21


class TokenScriptError(ValueError):
    """Raised when a locking script is not a push-then-drop token."""


def looks_like_pushdrop(script: bytes) -> bool:
    return len(script) > 0 and script[0] == PUSHDROP_SCRIPT_PREFIX


def decode_fields(script: bytes) -> list[bytes]:
    """Return the data fields of a token script."""
    decoded = decode_lock_before_pushdrop(script)
    if decoded is None:
        raise TokenScriptError("Token script must start with a locking public key and OP_CHECKSIG")
    return list(decoded["fields"])


def lock_fields(fields: list[bytes], locking_public_key: bytes) -> bytes:
    """Build a token script committing to ``fields``."""
    if len(locking_public_key) != 33:
        raise TokenScriptError(
            f"Locking public key must be 33 bytes (compressed), got {len(locking_public_key)}"
        )
    return bytes.fromhex(build_lock_before_pushdrop(fields, locking_public_key))


def p2pkh_script_for(public_key_hex: str) -> bytes:
    """Pay-to-public-key-hash locking script for a compressed key in hex."""
    return P2PKH().lock(PublicKey(public_key_hex).hash160()).serialize()
