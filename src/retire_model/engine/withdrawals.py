# Copyright 2025 Spencer Williams
#
# Use of this source code is governed by an MIT license:
# https://github.com/sw23/life-model/blob/main/LICENSE

"""
Withdrawal-order resolution.

Entries are walked in ascending rank. A rank holding a single entry drains
that asset up to the outstanding shortfall. A rank shared by several entries
is drained sequentially in declaration order, unless any of them carries a
weight, in which case the shortfall is split proportionally to the weights
and each share is capped at the asset's available balance. Whatever a rank
cannot cover rolls over to the next rank.
"""

from dataclasses import dataclass
from itertools import groupby
from typing import Dict, List, Optional

from ..scenario import Asset, WithdrawalOrderEntry


@dataclass
class Withdrawal:
    """One draw against an asset within a month."""
    source: str
    amount: float
    weight: Optional[float] = None
    proportion: Optional[float] = None

    def to_dict(self) -> dict:
        data = {"from": self.source, "amount": self.amount}
        if self.weight is not None:
            data["weight"] = self.weight
            data["proportion"] = self.proportion
        return data


def debit(asset: Asset, amount: float):
    """Remove amount from an asset.

    Planned-expense assets (negative balance) move toward zero instead of
    becoming more negative.
    """
    if asset.balance < 0:
        asset.balance = min(0.0, asset.balance + amount)
    else:
        asset.balance = max(0.0, asset.balance - amount)


def withdraw_from_asset(entry: WithdrawalOrderEntry, assets: Dict[str, Asset],
                        shortfall: float, withdrawals: List[Withdrawal]) -> float:
    """Cover as much of shortfall as one asset allows. Returns the remainder."""
    asset = assets.get(entry.account)
    if asset is None or asset.available_balance <= 0:
        return shortfall

    amount = min(asset.available_balance, shortfall)
    debit(asset, amount)
    if amount > 0:
        withdrawals.append(Withdrawal(asset.name, amount))
    return shortfall - amount


def withdraw_proportionally(group: List[WithdrawalOrderEntry], assets: Dict[str, Asset],
                            shortfall: float, withdrawals: List[Withdrawal]) -> float:
    """Split shortfall across same-rank entries by weight.

    Entries without a weight, with a zero weight, or pointing at an empty
    asset take no part in the split.

    Returns:
        The part of shortfall left uncovered by this group
    """
    available = [
        (entry, assets[entry.account])
        for entry in group
        if entry.account in assets
        and (entry.weight or 0) > 0
        and assets[entry.account].available_balance > 0
    ]
    if not available:
        return shortfall

    total_weight = sum(entry.weight for entry, _ in available)
    remaining = shortfall
    for entry, asset in available:
        if remaining <= 0:
            break
        proportion = entry.weight / total_weight
        amount = min(shortfall * proportion, asset.available_balance, remaining)
        if amount <= 0:
            continue
        debit(asset, amount)
        remaining -= amount
        withdrawals.append(Withdrawal(asset.name, amount, entry.weight, proportion))
    return remaining


def process_withdrawals(shortfall: float, draw_order: List[WithdrawalOrderEntry],
                        assets: Dict[str, Asset], withdrawals: List[Withdrawal]) -> float:
    """Cover a monthly shortfall from assets following the draw order.

    Args:
        shortfall: Amount to cover (expenses minus income); <= 0 means nothing to do
        draw_order: Entries sorted by ascending rank, ties in declaration order
        assets: Live assets keyed by name; balances are mutated in place
        withdrawals: Output list receiving one record per draw

    Returns:
        Unmet shortfall, 0 when fully covered
    """
    if shortfall <= 0:
        return 0.0

    remaining = shortfall
    for _, ranked in groupby(draw_order, key=lambda entry: entry.order):
        if remaining <= 0:
            break
        group = list(ranked)
        if len(group) == 1:
            remaining = withdraw_from_asset(group[0], assets, remaining, withdrawals)
        elif any(entry.weight is not None for entry in group):
            remaining = withdraw_proportionally(group, assets, remaining, withdrawals)
        else:
            for entry in group:
                if remaining <= 0:
                    break
                remaining = withdraw_from_asset(entry, assets, remaining, withdrawals)
    return max(0.0, remaining)
