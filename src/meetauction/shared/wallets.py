"""Wallet address helpers.

Addresses are stored and compared lower-cased; checksum casing is only a
presentation concern.
"""

import re

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_TX_HASH_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


def normalize_wallet(address: str) -> str:
    return address.strip().lower()


def same_wallet(a: str | None, b: str | None) -> bool:
    if not a or not b:
        return False
    return normalize_wallet(a) == normalize_wallet(b)


def is_zero_address(address: str | None) -> bool:
    return not address or normalize_wallet(address) == ZERO_ADDRESS


def is_wallet_address(value: str) -> bool:
    return bool(_ADDRESS_RE.match(value))


def is_tx_hash(value: str) -> bool:
    return bool(_TX_HASH_RE.match(value))
