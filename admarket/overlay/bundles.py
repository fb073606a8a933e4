"""BEEF transaction bundles (BRC-62 / BRC-96 / BRC-95 atomic), read and
written with the BSV SDK.

Merkle paths travel with a bundle but are never checked here.
"""

from __future__ import annotations

from bsv import Transaction
from bsv.transaction.beef import (
    ATOMIC_BEEF,
    BEEF_V1,
    BEEF_V2,
    Beef,
    BeefTx,
    new_beef_from_atomic_bytes,
    new_beef_from_bytes,
)
from bsv.utils import Reader

# BEEF V2 per-transaction format byte for an entry carrying only a txid
TXID_ONLY = 2

# Errors the SDK parsers raise for truncated or inconsistent input
_PARSE_ERRORS = (ValueError, KeyError, IndexError, TypeError)


class BeefError(ValueError):
    """Raised for malformed or unsupported BEEF bundles."""


def subject_transaction(beef: bytes) -> Transaction:
    """Return the transaction a bundle is about.

    Atomic bundles name it in their header. Otherwise it is the last entry,
    which must carry the full transaction rather than just its txid.
    """
    if len(beef) < 4:
        raise BeefError("BEEF is too short")
    version = int.from_bytes(beef[:4], "little")
    if version not in (ATOMIC_BEEF, BEEF_V1, BEEF_V2):
        raise BeefError(f"Unsupported BEEF version 0x{version:08x}")

    try:
        if version == BEEF_V1:
            return Transaction.from_beef(beef)
        if version == ATOMIC_BEEF:
            bundle, txid = new_beef_from_atomic_bytes(beef)
            entry = bundle.find_transaction(txid)
            if entry is None:
                raise BeefError(f"Transaction {txid} not found in BEEF")
        else:
            bundle = new_beef_from_bytes(beef)
            if not bundle.txs:
                raise BeefError("BEEF contains no transactions")
            entry = list(bundle.txs.values())[-1]
        return _full_transaction(entry)
    except BeefError:
        raise
    except _PARSE_ERRORS as exc:
        raise BeefError(f"Malformed BEEF: {exc}") from exc


def _full_transaction(entry: BeefTx) -> Transaction:
    if entry.tx_obj is not None:
        return entry.tx_obj
    if entry.data_format == TXID_ONLY or not entry.tx_bytes:
        raise BeefError(f"BEEF carries only the txid of {entry.txid}")
    return Transaction.from_reader(Reader(entry.tx_bytes))


def to_beef(transactions: list[Transaction]) -> bytes:
    """Bundle ``transactions`` (and any linked source transactions) as V2 BEEF.

    The last transaction given is written last and is the bundle's subject.
    """
    bundle = Beef(version=BEEF_V2)
    for tx in transactions:
        bundle.merge_transaction(tx)
    return bundle.to_binary()


def to_atomic_beef(tx: Transaction) -> bytes:
    bundle = Beef(version=BEEF_V2)
    bundle.merge_transaction(tx)
    return bundle.to_binary_atomic(tx.txid())
