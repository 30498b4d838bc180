"""Shared type definitions for asset and account identities.

Every identity in the ledger (asset, pair, registry, account) is a 20-byte
address written as a 0x-prefixed hex string and normalized to lowercase.
"""

from typing import Annotated, Any

from pydantic import BeforeValidator, Field

# The null identity: absent fee recipient, mint source, burn sink.
NULL_ADDRESS = "0x" + "00" * 20


def normalize_address(address: str, *, validate: bool = False) -> str:
    """Normalize an address to lowercase with a 0x prefix.

    Args:
        address: An address (with or without 0x prefix)
        validate: If True, raises ValueError for malformed addresses.

    Returns:
        Lowercase address with 0x prefix

    Raises:
        ValueError: If validate=True and address is malformed
    """
    addr = address.lower()
    if not addr.startswith("0x"):
        addr = "0x" + addr

    if validate and not is_valid_address(addr):
        raise ValueError(f"Invalid address: {address}")

    return addr


def is_valid_address(address: str) -> bool:
    """Check if a string is a well-formed 20-byte hex address."""
    if not isinstance(address, str):
        return False
    if not address.startswith("0x"):
        return False
    if len(address) != 42:
        return False
    try:
        int(address, 16)
        return True
    except ValueError:
        return False


def is_null_address(address: str | None) -> bool:
    """True for None or the all-zero address."""
    return address is None or normalize_address(address) == NULL_ADDRESS


def address_bytes(address: str) -> bytes:
    """Raw 20 bytes of an address (for hashing and canonical ordering)."""
    return bytes.fromhex(normalize_address(address)[2:])


def sort_assets(asset_a: str, asset_b: str) -> tuple[str, str]:
    """Return the two assets in canonical ascending byte order."""
    a = normalize_address(asset_a)
    b = normalize_address(asset_b)
    if address_bytes(a) < address_bytes(b):
        return a, b
    return b, a


def _validate_amount(value: Any) -> int:
    """Coerce decimal strings and ints into a non-negative int."""
    if isinstance(value, bool):
        raise ValueError("Amount cannot be a bool")
    if isinstance(value, str):
        try:
            value = int(value)
        except ValueError as err:
            raise ValueError(f"Amount must be a decimal integer string: '{value}'") from err
    if not isinstance(value, int):
        raise ValueError(f"Amount must be string or int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"Amount cannot be negative: {value}")
    return value


# 20-byte address, any case on input, lowercase after normalization
Address = Annotated[
    str,
    BeforeValidator(lambda v: normalize_address(v) if isinstance(v, str) else v),
    Field(pattern=r"^0x[a-f0-9]{40}$"),
]

# Non-negative integer amount (accepts decimal strings)
Amount = Annotated[
    int,
    BeforeValidator(_validate_amount),
    Field(ge=0, description="Non-negative integer amount in base units"),
]
