"""Unit tests for burn proof verification from receipt logs."""

from meetauction.config import DEFAULT_BURN_EVENT_SIGNATURE
from meetauction.domain.access.burn_proof import EventLogBurnProofVerifier, event_topic
from meetauction.domain.access.types import BurnClaim
from meetauction.domain.auctions.types import ReceiptLog, TxReceipt
from tests.fakes import CONTRACT_ADDRESS, STRANGER_WALLET, WINNER_WALLET, tx_hash_for

TOPIC0 = event_topic(DEFAULT_BURN_EVENT_SIGNATURE)

CLAIM = BurnClaim(auction_id=4, nft_token_id=12, wallet=WINNER_WALLET, tx_hash=tx_hash_for(1))


def _uint(value):
    return "0x" + f"{value:064x}"


def _addr(wallet):
    return "0x" + "0" * 24 + wallet[2:]


def _receipt(*logs, status=1):
    return TxReceipt(
        tx_hash=tx_hash_for(1),
        status=status,
        sender=WINNER_WALLET,
        block_number=1,
        logs=logs,
    )


def _burn_log(token_id=12, auction_id=4, wallet=WINNER_WALLET, address=CONTRACT_ADDRESS):
    return ReceiptLog(
        address=address,
        topics=(TOPIC0, _uint(token_id), _uint(auction_id), _addr(wallet)),
    )


def test_event_topic_matches_known_transfer_hash():
    assert event_topic("Transfer(address,address,uint256)") == (
        "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
    )


def test_matching_burn_event_verifies():
    verifier = EventLogBurnProofVerifier(CONTRACT_ADDRESS, DEFAULT_BURN_EVENT_SIGNATURE)

    assert verifier.verify(_receipt(_burn_log()), CLAIM) is True


def test_contract_address_is_case_insensitive():
    checksummed = "0x" + CONTRACT_ADDRESS[2:].upper()
    verifier = EventLogBurnProofVerifier(checksummed, DEFAULT_BURN_EVENT_SIGNATURE)

    assert verifier.verify(_receipt(_burn_log()), CLAIM) is True


def test_failed_receipt_never_verifies():
    verifier = EventLogBurnProofVerifier(CONTRACT_ADDRESS, DEFAULT_BURN_EVENT_SIGNATURE)

    assert verifier.verify(_receipt(_burn_log(), status=0), CLAIM) is False


def test_each_field_must_match():
    verifier = EventLogBurnProofVerifier(CONTRACT_ADDRESS, DEFAULT_BURN_EVENT_SIGNATURE)

    assert verifier.verify(_receipt(_burn_log(token_id=13)), CLAIM) is False
    assert verifier.verify(_receipt(_burn_log(auction_id=5)), CLAIM) is False
    assert verifier.verify(_receipt(_burn_log(wallet=STRANGER_WALLET)), CLAIM) is False


def test_other_contract_and_other_event_are_ignored():
    verifier = EventLogBurnProofVerifier(CONTRACT_ADDRESS, DEFAULT_BURN_EVENT_SIGNATURE)
    foreign = _burn_log(address="0x" + "ee" * 20)
    other_event = ReceiptLog(
        address=CONTRACT_ADDRESS,
        topics=(event_topic("Transfer(address,address,uint256)"), _uint(1), _uint(2), _uint(12)),
    )

    assert verifier.verify(_receipt(foreign, other_event), CLAIM) is False
    assert verifier.verify(_receipt(foreign, other_event, _burn_log()), CLAIM) is True


def test_undecodable_burn_log_rejects_in_strict_mode():
    verifier = EventLogBurnProofVerifier(CONTRACT_ADDRESS, DEFAULT_BURN_EVENT_SIGNATURE)
    truncated = ReceiptLog(address=CONTRACT_ADDRESS, topics=(TOPIC0, _uint(12)))

    assert verifier.verify(_receipt(truncated, _burn_log()), CLAIM) is False


def test_undecodable_burn_log_is_skipped_in_lenient_mode():
    verifier = EventLogBurnProofVerifier(
        CONTRACT_ADDRESS, DEFAULT_BURN_EVENT_SIGNATURE, strict=False
    )
    truncated = ReceiptLog(address=CONTRACT_ADDRESS, topics=(TOPIC0, _uint(12)))

    assert verifier.verify(_receipt(truncated, _burn_log()), CLAIM) is True
    assert verifier.verify(_receipt(truncated), CLAIM) is False
