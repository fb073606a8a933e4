"""Shared test fixtures for the advertisement overlay test suite.

Uses an in-memory SQLite database with StaticPool so all sessions share the
same connection (committed data is visible across sessions).
"""

from datetime import datetime, timedelta, timezone

import pytest
from bsv import PrivateKey, Transaction, TransactionInput, TransactionOutput
from bsv.script import P2PKH, Script
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from admarket.config import settings
from admarket.database import Base, get_db
from admarket.main import app
from admarket.models import *  # noqa: ensure all models are loaded for create_all
from admarket.overlay.bundles import to_beef
from admarket.overlay.tokens import lock_fields


# ---------------------------------------------------------------------------
# In-memory SQLite test engine (shared via StaticPool)
# ---------------------------------------------------------------------------

test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=False,
)
TestSession = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@event.listens_for(test_engine.sync_engine, "connect")
def _set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.close()


MARKER = settings.advertisement_protocol_marker
TOPIC = settings.advertisement_topic
LOOKUP_SERVICE = settings.advertisement_lookup_service
LOCKING_KEY = PrivateKey(0x1111).public_key().serialize()
SPONSOR_KEY = PrivateKey(0xABAB).public_key().hex()
VIEWER_KEY = PrivateKey(0xCDCD).public_key().hex()
SERVER_KEY = PrivateKey(0x5E5E)


def p2pkh_script(fill: int = 1) -> bytes:
    """A plain pay-to-public-key-hash script, never a token."""
    return P2PKH().lock(bytes([fill]) * 20).serialize()


# ---------------------------------------------------------------------------
# Auto-use: create/drop tables for every test
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
async def db():
    """Yield a fresh AsyncSession for direct service-layer tests."""
    async with TestSession() as session:
        yield session


@pytest.fixture
def session_factory():
    return TestSession


@pytest.fixture
def wallet():
    """Local wallet client (no wallet URL) over a fixed root key."""
    from admarket.services.wallet_client import WalletClient

    return WalletClient(private_key=SERVER_KEY.hex())


@pytest.fixture
def overlay_engine():
    from admarket.services.overlay_engine import build_overlay_engine

    return build_overlay_engine(TestSession)


@pytest.fixture
async def client(overlay_engine, wallet):
    """httpx AsyncClient wired to the FastAPI app with test DB override."""
    import httpx

    async def _override_get_db():
        async with TestSession() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.state.overlay_engine = overlay_engine
    app.state.wallet = wallet

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Token and transaction builders
# ---------------------------------------------------------------------------

def _future(days: int = 30) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).strftime("%Y-%m-%dT%H:%M:%S.000Z")


def _past(days: int = 1) -> str:
    return (datetime.now(timezone.utc) - timedelta(days=days)).strftime("%Y-%m-%dT%H:%M:%S.000Z")


@pytest.fixture
def ad_fields():
    """Factory fixture: the eight advertisement token fields as bytes."""
    def _make(**overrides) -> list[bytes]:
        values = {
            "marker": MARKER,
            "title": "Title",
            "description": "Desc",
            "file_hash": "hash123",
            "end_date": _future(),
            "sponsor": SPONSOR_KEY,
            "reward": "50",
            "service_url": "https://x",
        }
        values.update(overrides)
        order = ["marker", "title", "description", "file_hash", "end_date", "sponsor", "reward", "service_url"]
        return [values[k].encode("utf-8") for k in order]
    return _make


@pytest.fixture
def ad_script(ad_fields):
    """Factory fixture: a push-drop advertisement locking script."""
    def _make(fields: list[bytes] | None = None, **overrides) -> bytes:
        return lock_fields(fields if fields is not None else ad_fields(**overrides), LOCKING_KEY)
    return _make


@pytest.fixture
def make_tx():
    """Factory fixture: a Transaction with the given locking scripts as outputs."""
    counter = iter(range(1, 1_000_000))

    def _make(scripts: list[bytes], inputs: list[tuple[str, int]] | None = None, satoshis: int = 1) -> Transaction:
        tx_inputs = [
            TransactionInput(source_txid=txid, source_output_index=index)
            for txid, index in (inputs or [])
        ]
        if not tx_inputs:
            # Unique dummy input keeps txids distinct between calls
            tx_inputs = [TransactionInput(source_txid=f"{next(counter):064x}", source_output_index=0)]
        return Transaction(
            tx_inputs=tx_inputs,
            tx_outputs=[TransactionOutput(Script(s), satoshis) for s in scripts],
        )
    return _make


@pytest.fixture
def make_beef(make_tx):
    """Factory fixture: BEEF bytes for a transaction built from locking scripts."""
    def _make(scripts: list[bytes], **kwargs) -> tuple[bytes, Transaction]:
        tx = make_tx(scripts, **kwargs)
        return to_beef([tx]), tx
    return _make


@pytest.fixture
def make_funding(db: AsyncSession):
    """Factory fixture: store a FundingRecord."""
    from admarket.services import campaign_service

    async def _make(campaign_id: str = "ad-1", questions=None, answers=None,
                    satoshis_balance: int = 1000, reward_per_answer: int = 10):
        return await campaign_service.store_funding(
            db,
            campaign_id,
            questions or ["Q1?", "Q2?", "Q3?"],
            answers or ["red", "Blue", "green"],
            satoshis_balance,
            reward_per_answer,
        )
    return _make
