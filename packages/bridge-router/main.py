#!/usr/bin/env python3
"""Entry point for the bridge router.

Loads the router configuration, builds one bridge per configured chain
and runs a single command against them.
"""

import argparse
import asyncio
import json
import logging
import os
import sys

from dotenv import load_dotenv


# Configure logging before any other imports create loggers
def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


logger = logging.getLogger(__name__)

from bridge_router.config import RouterConfig, parse_chain_id
from bridge_router.errors import BridgeError
from bridge_router.models import VerifyArgs
from bridge_router.router import Router


async def verify(router: Router, args: argparse.Namespace) -> int:
    """Verify one swap-out and print the result as JSON.

    Returns:
        Process exit code
    """
    chain_id: int = args.chain_id if args.chain_id is not None else router.config.chains[0].chain_id
    bridge = router.get_bridge_by_chain_id(chain_id)
    if bridge is None:
        logger.error(f"No bridge configured for chain {chain_id}")
        return 1

    try:
        result = await bridge.verify_transaction(
            args.tx_hash,
            VerifyArgs(log_index=args.log_index, allow_unstable=args.allow_unstable),
        )
    except BridgeError as e:
        logger.error(f"Swap rejected: {e}")
        print(json.dumps(e.as_dict(), indent=2))
        return 2

    print(json.dumps(result.to_dict(), indent=2))
    return 0


async def main() -> None:
    """Main entry point for the bridge router.

    Raises:
        SystemExit: With 1 on configuration errors, 2 on rejected swaps
    """
    load_dotenv()

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Bridge Router - build, sign and verify cross-chain swap transactions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables:
  ROUTER_CONFIG_FILE  - JSON file describing chains, tokens and the MPC service
  MPC_API_ADDRESS     - Signing service URL or unix socket path
  PARALLEL_SWAP       - Allocate sequences from the parallel-safe counter
  TEST_MODE           - Skip the destination chain id check
  LOG_LEVEL           - Logging level (can be overridden with --log-level)
        """
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: INFO)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    verify_parser = subparsers.add_parser("verify", help="Verify a swap-out transaction")
    verify_parser.add_argument("tx_hash", help="Origin transaction hash")
    verify_parser.add_argument(
        "--chain-id",
        type=parse_chain_id,
        default=None,
        help="Origin chain id (default: first configured chain)"
    )
    verify_parser.add_argument("--log-index", type=int, default=0, help="Swap-out log index")
    verify_parser.add_argument(
        "--allow-unstable",
        action="store_true",
        default=False,
        help="Skip the confirmation and initial height checks"
    )
    args: argparse.Namespace = parser.parse_args()

    setup_logging(args.log_level)
    logger.info("=== Bridge Router Starting ===")

    try:
        config: RouterConfig = RouterConfig.from_env()
        config.log_config()
        if not config.chains:
            raise ValueError("Router config has no chains")
        router: Router = Router.from_config(config)
    except ValueError as e:
        logger.error(f"Configuration Error: {e}")
        logger.error("Please check your environment variables:")
        logger.error("  - ROUTER_CONFIG_FILE: Router configuration JSON file")
        logger.error("  - MPC_API_ADDRESS: Signing service address")
        sys.exit(1)

    match args.command:
        case "verify":
            sys.exit(await verify(router, args))


if __name__ == "__main__":
    asyncio.run(main())
