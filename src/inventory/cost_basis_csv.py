"""
CSV import/export of cost basis data.

Format (header required)::

    address,cost_basis
    So11111111111111111111111111111111111111112,142.5
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Callable, Mapping, Optional

from .cost_basis import MAX_COST_BASIS_USD, CostBasisRecord, CostBasisStore

logger = logging.getLogger(__name__)

CSV_HEADER = "address,cost_basis"


class CostBasisImportError(ValueError):
    """Raised when a cost basis CSV file is rejected."""


def generate_cost_basis_csv(data: Mapping[str, Decimal]) -> str:
    rows = [CSV_HEADER]
    for address, cost_basis in data.items():
        rows.append(f"{address},{cost_basis}")
    return "\n".join(rows)


def export_cost_basis_csv(store: CostBasisStore) -> str:
    return generate_cost_basis_csv(
        {r.token_id: r.cost_basis_per_unit_usd for r in store.all()}
    )


def parse_cost_basis_csv(content: str) -> dict[str, Decimal]:
    """Parse ``address,cost_basis`` rows; the whole file is rejected on any bad row."""
    lines = content.splitlines()
    header = lines[0].strip().lstrip("﻿") if lines else ""
    if header != CSV_HEADER:
        raise CostBasisImportError(
            f"Invalid CSV format: Expected header '{CSV_HEADER}'"
        )

    result: dict[str, Decimal] = {}
    for index, line in enumerate(lines[1:], start=2):
        line = line.strip()
        if not line:
            continue
        parts = line.split(",")
        if len(parts) != 2:
            raise CostBasisImportError(
                f"Invalid CSV format: Row {index} has {len(parts)} columns (expected 2)"
            )
        address, raw_cost = parts[0].strip(), parts[1].strip()
        if not address:
            raise CostBasisImportError(f"Missing address at row {index}")
        try:
            cost = Decimal(raw_cost)
        except InvalidOperation as exc:
            raise CostBasisImportError(
                f"Invalid cost basis value '{raw_cost}' at row {index}: must be a number"
            ) from exc
        if not cost.is_finite() or cost < 0 or cost > MAX_COST_BASIS_USD:
            raise CostBasisImportError(
                f"Invalid cost basis value '{raw_cost}' at row {index}: "
                "must be a non-negative number"
            )
        result[address] = cost

    if not result:
        raise CostBasisImportError("No cost basis entries found in file")
    return result


def import_cost_basis_csv(
    store: CostBasisStore,
    content: str,
    token_lookup: Optional[Callable[[str], Optional[CostBasisRecord]]] = None,
) -> list[CostBasisRecord]:
    """
    Overwrite ``store`` entries with the rows of ``content``.

    Name/symbol/logo are kept from the existing record, or filled from
    ``token_lookup`` (e.g. a metadata search) when the token is new.
    """
    parsed = parse_cost_basis_csv(content)
    imported: list[CostBasisRecord] = []
    for address, cost in parsed.items():
        template = store.get(address)
        if template is None and token_lookup is not None:
            template = token_lookup(address)
        record = CostBasisRecord(
            token_id=address,
            cost_basis_per_unit_usd=cost,
            display_name=template.display_name if template else "",
            symbol=template.symbol if template else "",
            logo_ref=template.logo_ref if template else None,
            is_verified=template.is_verified if template else None,
        )
        store.set(record)
        imported.append(record)
    logger.info("Imported %d cost basis entries", len(imported))
    return imported
