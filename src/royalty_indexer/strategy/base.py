"""Shared strategy building blocks: protocol fee, basis-point splits, param parsing."""

from __future__ import annotations

from typing import Any

from royalty_indexer.errors import StrategyConfigError
from royalty_indexer.models.config import MAX_PROTOCOL_FEE_BPS
from royalty_indexer.models.strategy import BASIS_POINTS, RoyaltyShare, Split


class ProtocolFee:
    """Fixed basis-point fee taken from every gross payment before splitting."""

    def __init__(self, bps: int, treasury: str = "") -> None:
        if not 0 <= bps <= MAX_PROTOCOL_FEE_BPS:
            raise StrategyConfigError(
                f"protocol fee {bps}bp outside 0..{MAX_PROTOCOL_FEE_BPS}"
            )
        self.bps = bps
        self.treasury = treasury

    def compute(self, gross: int) -> int:
        return gross * self.bps // BASIS_POINTS


def split_by_basis_points(amount: int, table: list[RoyaltyShare]) -> list[Split]:
    """Divide ``amount`` by the table's basis points.

    Each share is floored; the rounding remainder goes to the first entry,
    so the split amounts always sum to ``amount``.
    """
    splits = [
        Split(
            recipient=share.recipient,
            amount=amount * share.basis_points // BASIS_POINTS,
            basis_points=share.basis_points,
            role=share.role,
        )
        for share in table
    ]
    if splits:
        dust = amount - sum(s.amount for s in splits)
        if dust:
            first = splits[0]
            splits[0] = Split(first.recipient, first.amount + dust, first.basis_points, first.role)
    return splits


def single_recipient(recipient: str, role: str = "artist") -> list[RoyaltyShare]:
    return [RoyaltyShare(recipient=recipient, basis_points=BASIS_POINTS, role=role)]


def parse_royalty_table(raw: Any, field: str = "royalties") -> list[RoyaltyShare]:
    """Validate a list of {recipient, basis_points, role} summing to 10000bp."""
    if not isinstance(raw, list) or not raw:
        raise StrategyConfigError(f"{field} must be a non-empty list")
    table: list[RoyaltyShare] = []
    for i, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise StrategyConfigError(f"{field}[{i}] must be an object")
        recipient = entry.get("recipient")
        if not recipient or not isinstance(recipient, str):
            raise StrategyConfigError(f"{field}[{i}].recipient is required")
        bps = entry.get("basis_points")
        if isinstance(bps, bool) or not isinstance(bps, int) or bps < 0:
            raise StrategyConfigError(f"{field}[{i}].basis_points must be a non-negative integer")
        table.append(RoyaltyShare(recipient, bps, str(entry.get("role", "payee"))))
    total = sum(s.basis_points for s in table)
    if total != BASIS_POINTS:
        raise StrategyConfigError(f"{field} sum to {total}bp, expected {BASIS_POINTS}bp")
    return table


def royalty_table_or_artist(params: dict[str, Any], field: str = "royalties") -> list[RoyaltyShare]:
    """The configured table, or 100% to ``params['artist']`` when absent."""
    if field in params:
        return parse_royalty_table(params[field], field)
    return single_recipient(require_str(params, "artist"))


def require_str(params: dict[str, Any], key: str) -> str:
    value = params.get(key)
    if not value or not isinstance(value, str):
        raise StrategyConfigError(f"{key} is required")
    return value


def wei_param(
    params: dict[str, Any],
    key: str,
    default: int | None = None,
) -> int:
    """A non-negative integer amount; JSON strings are accepted for big values."""
    value = params.get(key, default)
    if value is None:
        raise StrategyConfigError(f"{key} is required")
    if isinstance(value, bool):
        raise StrategyConfigError(f"{key} must be an integer amount")
    if isinstance(value, str):
        try:
            value = int(value, 10)
        except ValueError:
            raise StrategyConfigError(f"{key} must be an integer amount") from None
    if not isinstance(value, int):
        raise StrategyConfigError(f"{key} must be an integer amount")
    if value < 0:
        raise StrategyConfigError(f"{key} must not be negative")
    return value


def positive_param(params: dict[str, Any], key: str, default: int | None = None) -> int:
    value = wei_param(params, key, default)
    if value <= 0:
        raise StrategyConfigError(f"{key} must be positive")
    return value
