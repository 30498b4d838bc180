"""AMM error classes.

Failures are typed conditions grouped by the boundary that raises them:
configuration (registry), liquidity (mint/burn), swap, pair guards, routing,
and the asset ledger. None of them are retried; the enclosing transaction is
rolled back and the error propagates to the caller unchanged.
"""


class AmmError(Exception):
    """Base error for AMM operations."""

    pass


# --- Configuration (registry) ---


class ConfigurationError(AmmError):
    """Registry-level configuration error."""

    pass


class ZeroAddress(ConfigurationError):
    """An identity argument is the null address."""

    pass


class IdenticalAddresses(ConfigurationError):
    """Both assets of a pair are the same."""

    pass


class PairExists(ConfigurationError):
    """A pair already exists for this unordered asset combination."""

    pass


class Forbidden(ConfigurationError):
    """Caller is not the fee authority."""

    pass


# --- Liquidity (mint/burn) ---


class LiquidityError(AmmError):
    """Error while minting or burning liquidity shares."""

    pass


class InsufficientLiquidityMinted(LiquidityError):
    """Deposit would mint zero (or negative) shares."""

    pass


class InsufficientLiquidityBurned(LiquidityError):
    """Redemption would return zero of either asset."""

    pass


# --- Swap ---


class SwapError(AmmError):
    """Error while executing a swap."""

    pass


class InsufficientOutputAmount(SwapError):
    """Requested output is zero, or below the caller's minimum."""

    pass


class InsufficientLiquidity(SwapError):
    """Requested output meets or exceeds the reserve, or reserves are empty."""

    pass


class InsufficientInputAmount(SwapError):
    """No input was delivered to the pair."""

    pass


class InvalidInvariant(SwapError):
    """Fee-adjusted balances violate the constant-product invariant."""

    pass


class InvalidRecipient(LiquidityError, SwapError):
    """Recipient is the pair itself, one of its assets, or the null address."""

    pass


# --- Pair guards ---


class PairError(AmmError):
    """Pair-level guard failure."""

    pass


class Locked(PairError):
    """Pair operation re-entered while another one is in progress."""

    pass


class ReserveOverflow(PairError):
    """Balance does not fit the 112-bit reserve slot."""

    pass


class InvalidCallee(PairError):
    """Flash swap requested but the recipient has no registered callback."""

    pass


# --- Routing ---


class RoutingError(AmmError):
    """Router-level error."""

    pass


class Expired(RoutingError):
    """Deadline has passed."""

    pass


class InvalidPath(RoutingError):
    """Path is too short, or does not start or end where the call requires."""

    pass


class PairNotFound(RoutingError):
    """No pair exists for a hop of the path."""

    pass


class InsufficientAmount(RoutingError):
    """Quote requested for a zero amount."""

    pass


class InsufficientAAmount(RoutingError):
    """Realized amount of asset A is below the caller's minimum."""

    pass


class InsufficientBAmount(RoutingError):
    """Realized amount of asset B is below the caller's minimum."""

    pass


class ExcessiveInputAmount(RoutingError):
    """Required input exceeds the caller's maximum."""

    pass


class NativeNotSupported(RoutingError):
    """Router was built without a wrapped native asset."""

    pass


# --- Asset ledger ---


class LedgerError(AmmError):
    """Asset transfer failed."""

    pass


class InsufficientBalance(LedgerError):
    """Sender balance is below the transfer amount."""

    pass


class InsufficientAllowance(LedgerError):
    """Spender allowance is below the transfer amount."""

    pass
