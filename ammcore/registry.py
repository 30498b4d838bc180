"""Pair registry (factory).

Maps each unordered asset pair to exactly one Pair. Pair addresses are
deterministic: they depend only on the registry address and the two assets,
so anyone can compute them before the pair exists:

    address = keccak256(0xff ++ registry ++ keccak256(asset0 ++ asset1) ++ init_code_hash)[12:]

The registry also holds the protocol fee configuration and the authority
allowed to change it.
"""

from __future__ import annotations

import structlog
from eth_abi.packed import encode_packed
from eth_utils import keccak

from ammcore.constants import DEFAULT_REGISTRY_ADDRESS, PAIR_INIT_CODE_HASH
from ammcore.errors import Forbidden, IdenticalAddresses, PairExists, ZeroAddress
from ammcore.host import Host, transactional
from ammcore.models.events import FeeAuthorityChanged, FeeRecipientChanged, PairCreated
from ammcore.models.state import RegistryState
from ammcore.models.types import (
    address_bytes,
    is_null_address,
    normalize_address,
    sort_assets,
)
from ammcore.pair import Pair

logger = structlog.get_logger()


def compute_pair_address(
    registry_address: str,
    asset_a: str,
    asset_b: str,
    init_code_hash: bytes = PAIR_INIT_CODE_HASH,
) -> str:
    """Deterministic address of the pair for two assets (either order).

    Args:
        registry_address: Address of the creating registry
        asset_a: One asset
        asset_b: The other asset
        init_code_hash: Hash of the pair creation code

    Returns:
        Lowercase 0x-prefixed pair address
    """
    asset0, asset1 = sort_assets(asset_a, asset_b)
    salt = keccak(
        encode_packed(["address", "address"], [address_bytes(asset0), address_bytes(asset1)])
    )
    digest = keccak(
        encode_packed(
            ["bytes1", "address", "bytes32", "bytes32"],
            [b"\xff", address_bytes(registry_address), salt, init_code_hash],
        )
    )
    return "0x" + digest[12:].hex()


class PairRegistry:
    """Registry of pairs and holder of protocol fee configuration.

    Args:
        fee_authority: The only identity allowed to change fee settings
        host: Execution host shared by the registry, its pairs, and routers.
              Defaults to a fresh Host.
        address: The registry's own identity (part of every pair address)
    """

    def __init__(
        self,
        fee_authority: str,
        host: Host | None = None,
        address: str = DEFAULT_REGISTRY_ADDRESS,
    ) -> None:
        if is_null_address(fee_authority):
            raise ZeroAddress("Fee authority cannot be the null address")
        self.host = host if host is not None else Host()
        self.address = normalize_address(address, validate=True)
        self.fee_authority = normalize_address(fee_authority, validate=True)
        self.fee_recipient: str | None = None
        # Keyed both ways, (asset0, asset1) and (asset1, asset0)
        self._pairs: dict[tuple[str, str], str] = {}
        self._all_pairs: list[str] = []
        self._by_address: dict[str, Pair] = {}

    # =========================================================================
    # Reads
    # =========================================================================

    def get_pair(self, asset_a: str, asset_b: str) -> str | None:
        """Pair address for two assets in either order, or None."""
        key = (normalize_address(asset_a), normalize_address(asset_b))
        return self._pairs.get(key)

    def pair_exists(self, asset_a: str, asset_b: str) -> bool:
        return self.get_pair(asset_a, asset_b) is not None

    def __contains__(self, assets: object) -> bool:
        if not isinstance(assets, tuple) or len(assets) != 2:
            return False
        return self.pair_exists(*assets)

    def pair(self, asset_a: str, asset_b: str) -> Pair | None:
        """The Pair object for two assets in either order, or None."""
        address = self.get_pair(asset_a, asset_b)
        return self._by_address[address] if address is not None else None

    def pair_at(self, address: str) -> Pair | None:
        """Resolve a pair address to its Pair, or None if nothing lives there."""
        return self._by_address.get(normalize_address(address))

    @property
    def all_pairs(self) -> list[str]:
        """Pair addresses in creation order."""
        return list(self._all_pairs)

    def all_pair(self, index: int) -> str:
        """Pair address at creation index `index`.

        Raises:
            IndexError: If index is out of range
        """
        if index < 0 or index >= len(self._all_pairs):
            raise IndexError(f"Pair index {index} out of range ({len(self._all_pairs)} pairs)")
        return self._all_pairs[index]

    @property
    def all_pairs_length(self) -> int:
        return len(self._all_pairs)

    def pair_address_for(self, asset_a: str, asset_b: str) -> str:
        """Deterministic address for a pair of assets, whether or not it exists."""
        return compute_pair_address(self.address, asset_a, asset_b)

    def state(self) -> RegistryState:
        return RegistryState(
            address=self.address,
            fee_recipient=self.fee_recipient,
            fee_authority=self.fee_authority,
            all_pairs=list(self._all_pairs),
        )

    # =========================================================================
    # Mutators
    # =========================================================================

    @transactional
    def create_pair(self, asset_a: str, asset_b: str) -> str:
        """Create the pair for two assets.

        Returns:
            The new pair's address

        Raises:
            ZeroAddress: If either asset is the null address
            IdenticalAddresses: If both assets are the same
            PairExists: If a pair already exists (in either order)
        """
        if is_null_address(asset_a) or is_null_address(asset_b):
            raise ZeroAddress("Pair assets cannot be the null address")
        asset_a = normalize_address(asset_a, validate=True)
        asset_b = normalize_address(asset_b, validate=True)
        if asset_a == asset_b:
            raise IdenticalAddresses(f"Cannot pair {asset_a} with itself")
        if self.pair_exists(asset_a, asset_b):
            raise PairExists(f"Pair already exists for {asset_a}/{asset_b}")

        asset0, asset1 = sort_assets(asset_a, asset_b)
        address = compute_pair_address(self.address, asset0, asset1)
        pair = Pair(self.host, self, address, asset0, asset1)

        journal = self.host.journal
        journal.set_item(self._pairs, (asset0, asset1), address)
        journal.set_item(self._pairs, (asset1, asset0), address)
        journal.append(self._all_pairs, address)
        journal.set_item(self._by_address, address, pair)

        self.host.events.emit(
            PairCreated(
                emitter=self.address,
                asset0=asset0,
                asset1=asset1,
                pair=address,
                index=len(self._all_pairs),
            )
        )
        logger.info(
            "pair_created",
            pair=address[-8:],
            asset0=asset0[-8:],
            asset1=asset1[-8:],
            total_pairs=len(self._all_pairs),
        )
        return address

    @transactional
    def set_fee_recipient(self, fee_recipient: str | None, *, sender: str) -> None:
        """Enable the protocol fee (or disable it with None / the null address).

        Raises:
            Forbidden: If sender is not the fee authority
        """
        self._check_authority(sender)
        if fee_recipient is None or is_null_address(fee_recipient):
            fee_recipient = None
        else:
            fee_recipient = normalize_address(fee_recipient, validate=True)
        self.host.journal.set_attr(self, "fee_recipient", fee_recipient)
        self.host.events.emit(
            FeeRecipientChanged(emitter=self.address, fee_recipient=self.fee_recipient)
        )
        logger.info(
            "fee_recipient_changed",
            fee_recipient=self.fee_recipient[-8:] if self.fee_recipient else None,
        )

    @transactional
    def set_fee_authority(self, fee_authority: str, *, sender: str) -> None:
        """Hand fee authority to another identity.

        Raises:
            Forbidden: If sender is not the fee authority
            ZeroAddress: If fee_authority is the null address
        """
        self._check_authority(sender)
        if is_null_address(fee_authority):
            raise ZeroAddress("Fee authority cannot be the null address")
        self.host.journal.set_attr(
            self, "fee_authority", normalize_address(fee_authority, validate=True)
        )
        self.host.events.emit(
            FeeAuthorityChanged(emitter=self.address, fee_authority=self.fee_authority)
        )
        logger.info("fee_authority_changed", fee_authority=self.fee_authority[-8:])

    def _check_authority(self, sender: str) -> None:
        if normalize_address(sender) != self.fee_authority:
            raise Forbidden(f"{sender} is not the fee authority")


__all__ = ["PairRegistry", "compute_pair_address"]
