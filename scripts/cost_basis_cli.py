"""
Manage the cost basis store.

Usage:
  python scripts/cost_basis_cli.py list
  python scripts/cost_basis_cli.py set <mint> --per-unit 1.25
  python scripts/cost_basis_cli.py set <mint> --total-cost 500 --units 400
  python scripts/cost_basis_cli.py delete <mint>
  python scripts/cost_basis_cli.py import cost_basis.csv [--lookup]
  python scripts/cost_basis_cli.py export cost_basis.csv
"""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from config import cost_basis_file  # noqa: E402
from inventory.cost_basis import (  # noqa: E402
    CostBasisRecord,
    CostBasisStoreError,
    JsonFileCostBasisStore,
)
from inventory.cost_basis_csv import (  # noqa: E402
    CostBasisImportError,
    export_cost_basis_csv,
    import_cost_basis_csv,
)
from pricing.jupiter_client import JupiterClient, JupiterConfig, QuoteUnavailable  # noqa: E402
from pricing.quote import InvalidAmount  # noqa: E402

logger = logging.getLogger("cost_basis_cli")


def _metadata_lookup(client: JupiterClient):
    def lookup(mint: str):
        try:
            token = client.get_token(mint)
        except QuoteUnavailable as exc:
            logger.warning("Token lookup failed for %s: %s", mint, exc)
            return None
        if token is None:
            return None
        return CostBasisRecord(
            token_id=mint,
            cost_basis_per_unit_usd=0,
            display_name=token.name,
            symbol=token.symbol,
            logo_ref=token.logo,
            is_verified=token.is_verified,
        )

    return lookup


def main() -> int:
    parser = argparse.ArgumentParser(description="Cost basis store")
    parser.add_argument("--file", default=None, help="Store path (default: $COST_BASIS_FILE)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list")

    set_p = sub.add_parser("set")
    set_p.add_argument("mint")
    set_p.add_argument("--per-unit", default=None)
    set_p.add_argument("--total-cost", default=None)
    set_p.add_argument("--units", default=None)
    set_p.add_argument("--name", default="")
    set_p.add_argument("--symbol", default="")

    del_p = sub.add_parser("delete")
    del_p.add_argument("mint")

    imp_p = sub.add_parser("import")
    imp_p.add_argument("path")
    imp_p.add_argument(
        "--lookup", action="store_true", help="Fill token name/symbol from Jupiter"
    )

    exp_p = sub.add_parser("export")
    exp_p.add_argument("path")

    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s |%(levelname)s |%(message)s")

    store = JsonFileCostBasisStore(args.file or cost_basis_file())

    try:
        if args.command == "list":
            for record in sorted(store.all(), key=lambda r: r.symbol or r.token_id):
                label = record.symbol or "?"
                print(f"{label:<10} {record.token_id}  ${record.cost_basis_per_unit_usd:.6f}")
        elif args.command == "set":
            metadata = {"display_name": args.name, "symbol": args.symbol}
            if args.per_unit is not None:
                record = CostBasisRecord(
                    token_id=args.mint, cost_basis_per_unit_usd=args.per_unit, **metadata
                )
            elif args.total_cost is not None and args.units is not None:
                record = CostBasisRecord.from_totals(
                    args.mint, args.total_cost, args.units, **metadata
                )
            else:
                parser.error("set needs --per-unit or both --total-cost and --units")
            store.set(record)
        elif args.command == "delete":
            if not store.delete(args.mint):
                logger.warning("No cost basis stored for %s", args.mint)
                return 1
        elif args.command == "import":
            content = Path(args.path).read_text(encoding="utf-8")
            lookup = _metadata_lookup(JupiterClient(JupiterConfig.from_env())) if args.lookup else None
            import_cost_basis_csv(store, content, token_lookup=lookup)
        elif args.command == "export":
            Path(args.path).write_text(export_cost_basis_csv(store) + "\n", encoding="utf-8")
            logger.info("Exported cost basis to %s", args.path)
    except (InvalidAmount, CostBasisImportError, CostBasisStoreError) as exc:
        logger.error("%s", exc)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
