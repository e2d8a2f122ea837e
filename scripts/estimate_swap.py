"""
Estimate the cost and realized gain/loss of a swap before executing it.

Usage:
  python scripts/estimate_swap.py --input <mint> --output <mint> --amount 10
  python scripts/estimate_swap.py --input <mint> --output <mint> --amount 10 \
      --taker <wallet address>
  python scripts/estimate_swap.py --input <mint> --output <mint> --watch

With --watch, amounts are read from stdin one per line and re-estimated once
typing pauses for QUOTE_DEBOUNCE_MS.

Requires JUPITER_API_KEY (see .env).  Cost basis is read from
COST_BASIS_FILE (default: cost_basis.json).
"""

import argparse
import logging
import sys
from pathlib import Path

# Ensure src/ is on sys.path so bare imports work from scripts/
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from config import cost_basis_file  # noqa: E402
from costs.breakdown import CostThresholds  # noqa: E402
from estimate_report import format_swap_estimate  # noqa: E402
from inventory.cost_basis import JsonFileCostBasisStore  # noqa: E402
from pricing.jupiter_client import (  # noqa: E402
    JupiterClient,
    JupiterConfig,
    QuoteUnavailable,
)
from pricing.quote import InvalidAmount, MalformedQuote  # noqa: E402
from swap_estimator import DebouncedEstimator, SwapEstimator  # noqa: E402

logger = logging.getLogger("estimate_swap")


def _watch(estimator, input_token, output_token, taker) -> int:
    def show(estimate) -> None:
        print(format_swap_estimate(estimate), flush=True)

    def show_error(exc: Exception) -> None:
        logger.error("%s", exc)

    watcher = DebouncedEstimator(
        estimator, input_token, output_token, show, party_id=taker, on_error=show_error
    )
    try:
        for line in sys.stdin:
            if line.strip():
                watcher.update_amount(line.strip())
        watcher.flush()
    except KeyboardInterrupt:
        watcher.cancel()
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Swap gain/loss estimator")
    parser.add_argument("--input", required=True, help="Mint of the token to sell")
    parser.add_argument("--output", required=True, help="Mint of the token to buy")
    parser.add_argument("--amount", default=None, help="Amount to sell (display units)")
    parser.add_argument(
        "--watch", action="store_true", help="Read amounts from stdin and re-estimate"
    )
    parser.add_argument("--taker", default=None, help="Wallet address paying the fees")
    parser.add_argument(
        "--cost-basis-file",
        default=None,
        help="Cost basis JSON store (default: $COST_BASIS_FILE)",
    )
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()
    if args.amount is None and not args.watch:
        parser.error("--amount is required unless --watch is given")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s |%(levelname)s |%(message)s",
    )

    client = JupiterClient(JupiterConfig.from_env())
    store = JsonFileCostBasisStore(args.cost_basis_file or cost_basis_file())
    estimator = SwapEstimator(client, store, thresholds=CostThresholds.from_env())

    try:
        input_token = client.get_token(args.input)
        output_token = client.get_token(args.output)
        if input_token is None or output_token is None:
            missing = args.input if input_token is None else args.output
            logger.error("Unknown token: %s", missing)
            return 2
        if args.watch:
            return _watch(estimator, input_token, output_token, args.taker)
        estimate = estimator.estimate(
            input_token, output_token, args.amount, party_id=args.taker
        )
    except InvalidAmount as exc:
        logger.error("Invalid amount: %s", exc)
        return 2
    except MalformedQuote as exc:
        logger.error("Provider returned a malformed quote: %s", exc)
        return 1
    except QuoteUnavailable as exc:
        logger.error("Quote unavailable: %s", exc)
        return 1

    print(format_swap_estimate(estimate))
    return 0


if __name__ == "__main__":
    sys.exit(main())
