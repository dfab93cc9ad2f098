"""Composition root.

Collaborators are built once per process (API lifespan or worker startup)
and handed to constructors; nothing below keeps module-level service state.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from meetauction.config import Settings
from meetauction.domain.access.burn_proof import EventLogBurnProofVerifier
from meetauction.domain.access.gate import AccessGate
from meetauction.domain.access.gate_pass import GatePassService
from meetauction.domain.auctions.orchestrator import AuctionOrchestrator
from meetauction.domain.auctions.registry import AuctionRegistry
from meetauction.domain.auctions.workflow import AuctionCompletionWorkflow
from meetauction.infrastructure.chain.client import Web3ChainClient
from meetauction.infrastructure.database.ledger import SqlLedgerFactory
from meetauction.infrastructure.meetings.jaas import JaasRoomProvisioner, build_room_provisioner


@dataclass
class Services:
    chain: Web3ChainClient
    provisioner: JaasRoomProvisioner
    ledger_factory: SqlLedgerFactory
    orchestrator: AuctionOrchestrator
    gate: AccessGate
    gate_passes: GatePassService
    registry: AuctionRegistry


def build_services(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
) -> Services:
    chain = Web3ChainClient.from_settings(settings)
    provisioner = build_room_provisioner(settings)
    ledger_factory = SqlLedgerFactory(session_factory, settings.auction_contract_address)

    workflow = AuctionCompletionWorkflow(chain, chain, provisioner, ledger_factory)
    orchestrator = AuctionOrchestrator(
        chain,
        workflow,
        ledger_factory,
        end_unbid_auctions=settings.end_unbid_auctions,
    )
    gate = AccessGate(
        chain,
        ledger_factory,
        EventLogBurnProofVerifier(
            settings.auction_contract_address,
            settings.burn_event_signature,
            strict=settings.burn_proof_strict,
        ),
        receipt_timeout_seconds=settings.chain_rpc_timeout_seconds,
    )
    gate_passes = GatePassService(gate, ledger_factory, ttl_hours=settings.gate_pass_ttl_hours)
    registry = AuctionRegistry(chain, ledger_factory)

    return Services(
        chain=chain,
        provisioner=provisioner,
        ledger_factory=ledger_factory,
        orchestrator=orchestrator,
        gate=gate,
        gate_passes=gate_passes,
        registry=registry,
    )
