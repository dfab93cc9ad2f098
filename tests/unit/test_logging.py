"""Unit tests for logging setup."""

import structlog

from meetauction.config import get_settings
from meetauction.shared.logging import setup_logging


def _run_processors(event_dict):
    for processor in structlog.get_config()["processors"][:2]:
        event_dict = processor(None, "info", event_dict)
    return event_dict


class TestProcessContext:
    def teardown_method(self):
        structlog.reset_defaults()

    def test_events_carry_role_and_chain(self):
        setup_logging(role="worker")

        event = _run_processors({"event": "scan_started"})

        assert event["role"] == "worker"
        assert event["chain_id"] == get_settings().chain_id
        assert event["contract"] == get_settings().auction_contract_address.lower()

    def test_explicit_fields_win(self):
        setup_logging()

        event = _run_processors({"event": "worker_started", "contract": "0xabc"})

        assert event["role"] == "api"
        assert event["contract"] == "0xabc"
