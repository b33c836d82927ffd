"""
Run one integrity check from the command line and print the JSON response.

How to run:
    From project root (with .env configured):
        py -m backend_trustchain.tools.verify_wallet <wallet> [--notarize]

Env: SOLANA_RPC_URL, FAIRSCALE_API_URL, NOTARY_SECRET (for --notarize), NOTARY_DRY_RUN.
Exit code 2 for an invalid address, 1 when history could not be fetched.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from backend_trustchain.analytics.integrity_pipeline import VerificationResult, build_integrity_service
from backend_trustchain.core.exceptions import HistoryFetchError, InvalidAddressError
from backend_trustchain.trustchain_logging import get_logger

logger = get_logger(__name__)


async def run(wallet: str, notarize: bool) -> VerificationResult:
    service = build_integrity_service()
    try:
        return await service.verify(wallet, notarize=notarize)
    finally:
        await service.close()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Verify the behavioral integrity of a Solana wallet.")
    parser.add_argument("wallet", help="Wallet address (base58)")
    parser.add_argument("--notarize", action="store_true", help="Notarize VERIFIED / SYBIL decisions on-chain")
    args = parser.parse_args(argv)

    try:
        result = asyncio.run(run(args.wallet.strip(), args.notarize))
    except InvalidAddressError as e:
        print(json.dumps({"status": e.code}))
        return 2
    except HistoryFetchError as e:
        logger.error("verify_wallet_failed", error=e.reason)
        print(json.dumps({"error": "History fetch failed", "details": e.reason}))
        return 1

    print(json.dumps(result.to_response(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
