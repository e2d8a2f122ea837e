# inventory/cost_basis.py

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional, Protocol

from pricing.quote import InvalidAmount

logger = logging.getLogger(__name__)

# Upper bound for a per-unit cost basis; anything above is a typo.
MAX_COST_BASIS_USD = Decimal("1e15")


def _to_decimal(value: Decimal | int | float | str, name: str) -> Decimal:
    if isinstance(value, bool):
        raise InvalidAmount(f"{name} must be a number, got {value!r}")
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise InvalidAmount(f"{name} must be a number, got {value!r}") from exc
    if not amount.is_finite():
        raise InvalidAmount(f"{name} must be finite, got {value!r}")
    return amount


@dataclass(frozen=True)
class CostBasisRecord:
    """
    User-entered average cost per unit of one token, in USD.

    One record per token, shared across wallets.  Zero is allowed
    (airdrops, tokens received for free).
    """

    token_id: str
    cost_basis_per_unit_usd: Decimal
    display_name: str = ""
    symbol: str = ""
    logo_ref: Optional[str] = None
    is_verified: Optional[bool] = None

    def __post_init__(self) -> None:
        if not self.token_id:
            raise ValueError("token_id must be provided")
        cost = _to_decimal(self.cost_basis_per_unit_usd, "cost_basis_per_unit_usd")
        if cost < 0:
            raise InvalidAmount("cost basis must be non-negative")
        if cost > MAX_COST_BASIS_USD:
            raise InvalidAmount(f"cost basis exceeds {MAX_COST_BASIS_USD}")
        object.__setattr__(self, "cost_basis_per_unit_usd", cost)

    @classmethod
    def from_totals(
        cls,
        token_id: str,
        total_cost_usd: Decimal | int | float | str,
        total_units: Decimal | int | float | str,
        **metadata,
    ) -> "CostBasisRecord":
        """Blend ``total_cost_usd`` paid for ``total_units`` into a per-unit cost."""
        cost = _to_decimal(total_cost_usd, "total_cost_usd")
        units = _to_decimal(total_units, "total_units")
        if units <= 0:
            raise InvalidAmount("total_units must be greater than zero")
        if cost < 0:
            raise InvalidAmount("total_cost_usd must be non-negative")
        return cls(token_id=token_id, cost_basis_per_unit_usd=cost / units, **metadata)

    def to_dict(self) -> dict:
        data = {
            "tokenAddress": self.token_id,
            "costBasisUSD": str(self.cost_basis_per_unit_usd),
            "tokenName": self.display_name,
            "tokenSymbol": self.symbol,
        }
        if self.logo_ref is not None:
            data["tokenLogo"] = self.logo_ref
        if self.is_verified is not None:
            data["isVerified"] = self.is_verified
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "CostBasisRecord":
        return cls(
            token_id=str(data["tokenAddress"]),
            cost_basis_per_unit_usd=data["costBasisUSD"],
            display_name=str(data.get("tokenName") or ""),
            symbol=str(data.get("tokenSymbol") or ""),
            logo_ref=data.get("tokenLogo"),
            is_verified=data.get("isVerified"),
        )


class CostBasisStore(Protocol):
    """Key-value store of cost basis records, keyed by token id."""

    def get(self, token_id: str) -> Optional[CostBasisRecord]: ...

    def set(self, record: CostBasisRecord) -> None: ...

    def delete(self, token_id: str) -> bool: ...

    def all(self) -> list[CostBasisRecord]: ...


class InMemoryCostBasisStore:
    def __init__(self, records: Optional[list[CostBasisRecord]] = None):
        self._records: dict[str, CostBasisRecord] = {}
        self._lock = threading.Lock()
        for record in records or []:
            self.set(record)

    def get(self, token_id: str) -> Optional[CostBasisRecord]:
        with self._lock:
            return self._records.get(token_id)

    def set(self, record: CostBasisRecord) -> None:
        with self._lock:
            self._records[record.token_id] = record

    def delete(self, token_id: str) -> bool:
        with self._lock:
            return self._records.pop(token_id, None) is not None

    def all(self) -> list[CostBasisRecord]:
        with self._lock:
            return list(self._records.values())


class CostBasisStoreError(RuntimeError):
    """Raised when the store file exists but cannot be parsed."""


class JsonFileCostBasisStore:
    """
    JSON file of ``{token_id: record}``.

    Every read goes to disk so edits made by another process show up on the
    next calculation.  Writes replace the file atomically.  Entries that fail
    validation are skipped on read but written back untouched, so saving one
    token never drops another.  A file that cannot be parsed at all reads as
    empty, and ``set``/``delete`` refuse to overwrite it.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> tuple[dict[str, CostBasisRecord], dict[str, Any]]:
        """Valid records and the raw entries that failed validation."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}, {}
        try:
            data = json.loads(raw) if raw.strip() else {}
        except ValueError as exc:
            raise CostBasisStoreError(f"{self.path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise CostBasisStoreError(
                f"{self.path}: expected an object, got {type(data).__name__}"
            )

        records: dict[str, CostBasisRecord] = {}
        invalid: dict[str, Any] = {}
        for token_id, entry in data.items():
            try:
                records[token_id] = CostBasisRecord.from_dict(entry)
            except (ValueError, KeyError, TypeError) as exc:
                logger.error(
                    "Skipping invalid cost basis entry %s in %s: %s", token_id, self.path, exc
                )
                invalid[token_id] = entry
        return records, invalid

    def _read(self) -> dict[str, CostBasisRecord]:
        try:
            records, _ = self._load()
        except CostBasisStoreError as exc:
            logger.error("Failed to read cost basis data: %s", exc)
            return {}
        return records

    def _write(self, records: dict[str, CostBasisRecord], invalid: dict[str, Any]) -> None:
        payload: dict[str, Any] = dict(invalid)
        payload.update({token_id: r.to_dict() for token_id, r in records.items()})
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get(self, token_id: str) -> Optional[CostBasisRecord]:
        return self._read().get(token_id)

    def set(self, record: CostBasisRecord) -> None:
        """Raises ``CostBasisStoreError`` rather than overwrite an unreadable file."""
        with self._lock:
            records, invalid = self._load()
            invalid.pop(record.token_id, None)
            records[record.token_id] = record
            self._write(records, invalid)
        logger.info(
            "Saved cost basis for %s (%s): $%s/unit",
            record.symbol or record.token_id,
            record.token_id,
            record.cost_basis_per_unit_usd,
        )

    def delete(self, token_id: str) -> bool:
        with self._lock:
            records, invalid = self._load()
            found = records.pop(token_id, None) is not None
            found = invalid.pop(token_id, None) is not None or found
            if not found:
                return False
            self._write(records, invalid)
        logger.info("Deleted cost basis for %s", token_id)
        return True

    def all(self) -> list[CostBasisRecord]:
        return list(self._read().values())
