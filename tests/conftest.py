"""
Pytest configuration and fixtures for meetauction backend tests.

The ledger runs on in-memory SQLite (aiosqlite); the chain is an in-process
fake that behaves like the MeetingAuction contract for the calls we make.
"""
import os
from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime

os.environ.setdefault("APP_SECRET_KEY", "test-secret-key-for-encryption-32chars")
os.environ.setdefault("AUTH_PROVIDER", "dev")

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from eth_account import Account
from eth_account.messages import encode_defunct
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from meetauction.config import DEFAULT_BURN_EVENT_SIGNATURE
from meetauction.domain.access.burn_proof import EventLogBurnProofVerifier
from meetauction.domain.access.gate import AccessGate
from meetauction.domain.access.gate_pass import GatePassService, gate_pass_message
from meetauction.domain.auctions.orchestrator import AuctionOrchestrator
from meetauction.domain.auctions.registry import AuctionRegistry
from meetauction.domain.auctions.types import AuctionSnapshot
from meetauction.domain.auctions.workflow import AuctionCompletionWorkflow
from meetauction.infrastructure.database.ledger import SqlLedgerFactory
from meetauction.infrastructure.database.models.base import Base
from meetauction.infrastructure.meetings.jaas import JaasRoomProvisioner
from tests.fakes import CONTRACT_ADDRESS, WINNER_KEY, FakeChain, FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime.now(UTC).replace(microsecond=0))


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def async_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def ledger_factory(session_factory: async_sessionmaker[AsyncSession]) -> SqlLedgerFactory:
    return SqlLedgerFactory(session_factory, CONTRACT_ADDRESS)


@pytest.fixture(scope="session")
def jaas_private_key() -> str:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()


@pytest.fixture
def provisioner(jaas_private_key: str, clock: FakeClock) -> JaasRoomProvisioner:
    return JaasRoomProvisioner(
        domain="8x8.vc",
        app_id="vpaas-magic-cookie-test",
        kid="vpaas-magic-cookie-test/4f4910",
        private_key=jaas_private_key,
        clock=clock,
    )


@pytest.fixture
def workflow(
    chain: FakeChain,
    provisioner: JaasRoomProvisioner,
    ledger_factory: SqlLedgerFactory,
    clock: FakeClock,
) -> AuctionCompletionWorkflow:
    return AuctionCompletionWorkflow(chain, chain, provisioner, ledger_factory, clock=clock)


@pytest.fixture
def make_orchestrator(
    chain: FakeChain,
    workflow: AuctionCompletionWorkflow,
    ledger_factory: SqlLedgerFactory,
) -> Callable[..., AuctionOrchestrator]:
    def _make(*, end_unbid_auctions: bool = False) -> AuctionOrchestrator:
        return AuctionOrchestrator(
            chain,
            workflow,
            ledger_factory,
            end_unbid_auctions=end_unbid_auctions,
        )

    return _make


@pytest.fixture
def orchestrator(make_orchestrator: Callable[..., AuctionOrchestrator]) -> AuctionOrchestrator:
    return make_orchestrator()


@pytest.fixture
def registry(chain: FakeChain, ledger_factory: SqlLedgerFactory) -> AuctionRegistry:
    return AuctionRegistry(chain, ledger_factory)


@pytest.fixture
def gate(chain: FakeChain, ledger_factory: SqlLedgerFactory, clock: FakeClock) -> AccessGate:
    return AccessGate(
        chain,
        ledger_factory,
        EventLogBurnProofVerifier(CONTRACT_ADDRESS, DEFAULT_BURN_EVENT_SIGNATURE),
        receipt_timeout_seconds=0.5,
        clock=clock,
    )


@pytest.fixture
def gate_passes(
    gate: AccessGate,
    ledger_factory: SqlLedgerFactory,
    clock: FakeClock,
) -> GatePassService:
    return GatePassService(gate, ledger_factory, ttl_hours=24, clock=clock)


@pytest.fixture
def sign_gate_pass() -> Callable[..., str]:
    """personal_sign of the gate pass request, as a wallet would produce it."""

    def _sign(auction_id: int, nft_token_id: int, key: str = WINNER_KEY) -> str:
        wallet = Account.from_key(key).address
        message = encode_defunct(text=gate_pass_message(auction_id, nft_token_id, wallet))
        signed = Account.sign_message(message, private_key=key)
        return "0x" + bytes(signed.signature).hex()

    return _sign


@pytest.fixture
async def completed_auction(chain: FakeChain, orchestrator: AuctionOrchestrator) -> AuctionSnapshot:
    """Auction 1 ended by a scan, with its meeting recorded and NFT 1 minted to the winner."""
    chain.add_auction(1)
    await orchestrator.trigger_scan()
    return chain.auctions[1]
