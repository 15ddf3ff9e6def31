"""
Swap-out verification for NEAR.

A swap-out is a receipt executed by the router contract that emits a
``LogSwapOut`` log line. The line has exactly 13 whitespace-separated fields:

    LogSwapOut token <token> from <from> bind <bind> amount <amount> ...
    ... to_chain_id <to_chain_id>

with values at positions 2, 4, 6, 8 and 12.
"""

import logging
from typing import TYPE_CHECKING, Any

from ...amounts import check_swap_value
from ...errors import (
    LogParseError,
    MissingTokenConfig,
    NoBridgeForChainID,
    RPCQueryError,
    TxBeforeInitialHeight,
    TxNotFound,
    TxNotStable,
    TxNotValidated,
    WrongBindAddress,
    WrongSender,
    WrongValue,
)
from ...models import SwapType, SwapVerificationResult
from .rpc import is_unknown_transaction

if TYPE_CHECKING:
    from .bridge import NearBridge

logger = logging.getLogger(__name__)

SWAPOUT_LOG_TAG = "LogSwapOut"
SWAPOUT_LOG_FIELDS = 13

_TOKEN_FIELD = 2
_FROM_FIELD = 4
_BIND_FIELD = 6
_AMOUNT_FIELD = 8
_TO_CHAIN_ID_FIELD = 12


def filter_receipts_logs(receipts_outcome: list[dict[str, Any]], router_contract: str) -> list[str]:
    """Logs of every receipt executed by the router contract, in order."""
    logs: list[str] = []
    for receipt in receipts_outcome:
        outcome = receipt.get("outcome", {})
        if outcome.get("executor_id") == router_contract:
            logs.extend(outcome.get("logs", []))
    return logs


def filter_swapout_logs(logs: list[str]) -> list[list[str]]:
    """Fields of every well-formed swap-out log line, in order."""
    swapouts: list[list[str]] = []
    for log in logs:
        fields = log.split()
        if len(fields) == SWAPOUT_LOG_FIELDS and fields[0] == SWAPOUT_LOG_TAG:
            swapouts.append(fields)
    return swapouts


def find_swapout_log(logs: list[str], log_index: int) -> list[str]:
    """
    Return the fields of the swap-out at ``log_index``.

    The index counts swap-out lines only, so each swap-out of a
    transaction has exactly one index it verifies under.

    Raises:
        LogParseError: If no swap-out exists at that index
    """
    swapouts = filter_swapout_logs(logs)
    if not swapouts:
        raise LogParseError("no swapout log found")
    if not 0 <= log_index < len(swapouts):
        raise LogParseError(f"log index {log_index} out of range, tx has {len(swapouts)} swapout logs")
    return swapouts[log_index]


def _parse_unsigned(value: str, name: str) -> int:
    if not (value.isascii() and value.isdigit()):
        raise LogParseError(f"invalid {name} in swapout log: {value!r}")
    return int(value)


def parse_swapout_fields(fields: list[str]) -> tuple[str, str, str, int, int]:
    """Split swap-out fields into (token, from, bind, amount, to_chain_id)."""
    amount = _parse_unsigned(fields[_AMOUNT_FIELD], "amount")
    to_chain_id = _parse_unsigned(fields[_TO_CHAIN_ID_FIELD], "to chain id")
    if to_chain_id == 0:
        raise LogParseError("zero to chain id in swapout log")
    return fields[_TOKEN_FIELD], fields[_FROM_FIELD], fields[_BIND_FIELD], amount, to_chain_id


async def check_tx_status(bridge: "NearBridge", tx: dict[str, Any], allow_unstable: bool) -> tuple[int, int]:
    """
    Check execution status, confirmations and the initial height.

    Returns:
        Tuple of (block height, block timestamp in seconds)
    """
    status = tx.get("status")
    if isinstance(status, dict) and "Failure" in status:
        raise TxNotValidated(f"tx failed: {status['Failure']}")

    try:
        header = await bridge.get_block_header(tx["transaction_outcome"]["block_hash"])
    except KeyError as e:
        raise TxNotFound(f"tx has no block hash: {e}") from e
    height = int(header["height"])
    timestamp = int(header["timestamp"]) // 1_000_000_000

    if not allow_unstable:
        chain_config = bridge.chain_config
        latest = await bridge.get_latest_block_number()
        if latest < height + chain_config.confirmations:
            raise TxNotStable(
                f"tx height {height} + confirmations {chain_config.confirmations} > latest {latest}"
            )
        if height < chain_config.initial_height:
            raise TxBeforeInitialHeight(f"tx height {height} < initial height {chain_config.initial_height}")

    return height, timestamp


async def verify_swapout_tx(
    bridge: "NearBridge", tx_hash: str, log_index: int, allow_unstable: bool
) -> SwapVerificationResult:
    """
    Verify the swap-out carried by a NEAR transaction.

    Args:
        bridge: Bridge of the origin chain
        tx_hash: Origin transaction hash
        log_index: Index of the swap-out among the swap-out logs of the tx
        allow_unstable: Skip the confirmation and initial-height checks

    Returns:
        SwapVerificationResult

    Raises:
        BridgeError: With the first rejection reason found
        RPCQueryError: If the gateways cannot be reached; the caller may retry
    """
    try:
        tx = await bridge.get_transaction(tx_hash)
    except RPCQueryError as e:
        if is_unknown_transaction(e):
            raise TxNotFound(f"tx {tx_hash} not found") from e
        logger.debug(f"get tx failed {tx_hash=}: {e}")
        raise

    height, timestamp = await check_tx_status(bridge, tx, allow_unstable)

    logs = filter_receipts_logs(tx.get("receipts_outcome", []), bridge.chain_config.router_contract)
    token, sender, bind, value, to_chain_id = parse_swapout_fields(find_swapout_log(logs, log_index))

    token_config = bridge.get_token_config(token)
    if token_config is None:
        raise MissingTokenConfig(f"missing token config of {token}")
    deposit_address = bridge.get_router_contract(token)

    result = SwapVerificationResult(
        swap_type=SwapType.ERC20_SWAP,
        tx_hash=tx_hash,
        log_index=log_index,
        from_chain_id=bridge.chain_id,
        to_chain_id=to_chain_id,
        token=token,
        token_id=token_config.token_id,
        sender=sender,
        receiver=deposit_address,
        bind=bind,
        value=value,
        height=height,
        timestamp=timestamp,
    )

    check_swapout_info(bridge, result, token_config.decimals)

    if not allow_unstable:
        logger.info(f"verify swapout pass {result}")
    return result


def check_swapout_info(bridge: "NearBridge", result: SwapVerificationResult, from_decimals: int) -> None:
    if result.sender.lower() == result.receiver.lower():
        raise WrongSender(f"sender {result.sender} is the deposit address")

    multichain_token = bridge.router.token_store.get_multichain_token(result.token_id, result.to_chain_id)
    if not multichain_token:
        logger.warning(f"get multichain token failed tokenID={result.token_id} chainID={result.to_chain_id}")
        raise MissingTokenConfig(f"no {result.token_id} token on chain {result.to_chain_id}")

    to_bridge = bridge.router.get_bridge_by_chain_id(result.to_chain_id)
    if to_bridge is None:
        raise NoBridgeForChainID(f"no bridge for chain {result.to_chain_id}")

    to_token = to_bridge.get_token_config(multichain_token)
    if to_token is None:
        raise MissingTokenConfig(f"missing token config of {multichain_token} on chain {result.to_chain_id}")

    if not check_swap_value(result.value, from_decimals, to_token.decimals):
        raise WrongValue(f"swap value {result.value} cannot be delivered")

    if not to_bridge.is_valid_address(result.bind):
        logger.warning(f"wrong bind address in swapout bind={result.bind}")
        raise WrongBindAddress(f"invalid bind address {result.bind!r} for chain {result.to_chain_id}")
