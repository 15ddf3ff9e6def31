"""
Decimal precision conversion between chains.

Builder and verifier share these helpers so both sides rescale an amount
identically. Scaling down truncates; the verifier rejects any value whose
rescaling would lose units, so a verified swap is always rescaled exactly.
"""

import logging

logger = logging.getLogger(__name__)


def convert_decimals(amount: int, from_decimals: int, to_decimals: int) -> int:
    """
    Rescale an amount from one token precision to another.

    Args:
        amount: Amount in smallest units of the origin token
        from_decimals: Origin token decimals
        to_decimals: Destination token decimals

    Returns:
        Amount in smallest units of the destination token (truncated when
        scaling down)
    """
    if amount < 0:
        raise ValueError(f"amount must be non-negative, got {amount}")
    if from_decimals == to_decimals:
        return amount
    if from_decimals < to_decimals:
        return amount * 10 ** (to_decimals - from_decimals)
    return amount // 10 ** (from_decimals - to_decimals)


def is_exact_conversion(amount: int, from_decimals: int, to_decimals: int) -> bool:
    """True when rescaling ``amount`` loses no units."""
    if from_decimals <= to_decimals:
        return True
    return amount % 10 ** (from_decimals - to_decimals) == 0


def check_swap_value(amount: int, from_decimals: int, to_decimals: int) -> bool:
    """
    Check an observed swap-out value can be delivered on the destination chain.

    The value must be positive, must rescale without loss, and must not
    vanish after rescaling.
    """
    if amount <= 0:
        logger.warning(f"swap value must be positive, got {amount}")
        return False
    if not is_exact_conversion(amount, from_decimals, to_decimals):
        logger.warning(
            f"swap value {amount} loses precision converting {from_decimals} -> {to_decimals} decimals"
        )
        return False
    return convert_decimals(amount, from_decimals, to_decimals) > 0
