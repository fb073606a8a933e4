"""Overlay network primitives: service interfaces, BEEF bundles and token scripts."""

from admarket.overlay.bundles import BeefError, subject_transaction, to_atomic_beef, to_beef
from admarket.overlay.interfaces import LookupService, TopicManager
from admarket.overlay.tokens import TokenScriptError, decode_fields, lock_fields, looks_like_pushdrop

__all__ = [
    "BeefError",
    "LookupService",
    "TokenScriptError",
    "TopicManager",
    "decode_fields",
    "lock_fields",
    "looks_like_pushdrop",
    "subject_transaction",
    "to_atomic_beef",
    "to_beef",
]
