# Copyright 2025 Spencer Williams
#
# Use of this source code is governed by an MIT license:
# https://github.com/sw23/life-model/blob/main/LICENSE

"""CSV export of simulation ledgers."""

import datetime
import io
from typing import List, Optional, Union

import pandas as pd

from .cashflow import SimulationResult

LEDGER_COLUMNS = ["Month", "Date", "Income", "Expenses", "Shortfall"]

DateLike = Union[str, datetime.date, pd.Timestamp, None]


def export_asset_names(result: SimulationResult) -> List[str]:
    """Asset columns to export.

    Dynamic (deposit-created) assets that never held a balance are left out.
    """
    dynamic = set(result.dynamic_assets)
    return [
        name for name, history in result.balance_history.items()
        if name not in dynamic or any(balance != 0 for balance in history)
    ]


def ledger_frame(result: SimulationResult, start_date: DateLike = None) -> pd.DataFrame:
    """Build the export table: one row per month, 1-based month numbers.

    Args:
        result: Output of CashFlowEngine.simulate
        start_date: Calendar month of the first ledger row. Defaults to the
                    current month.

    Returns:
        DataFrame with columns Month, Date, Income, Expenses, Shortfall and
        one column per exported asset
    """
    first = pd.Period(pd.Timestamp(start_date) if start_date is not None else pd.Timestamp.today(),
                      freq="M")
    months = range(len(result.ledger))

    df = pd.DataFrame({
        "Month": [m + 1 for m in months],
        "Date": [(first + m).strftime("%Y-%m") for m in months],
        "Income": [float(entry.income) for entry in result.ledger],
        "Expenses": [float(entry.expenses) for entry in result.ledger],
        "Shortfall": [float(entry.shortfall) for entry in result.ledger],
    })
    for name in export_asset_names(result):
        df[name] = [float(balance) for balance in result.balance_history[name]]
    return df


def to_csv(result: SimulationResult, start_date: DateLike = None) -> str:
    """Render a simulation as CSV text with monetary values to two decimals."""
    return ledger_frame(result, start_date).to_csv(index=False, float_format="%.2f",
                                                   lineterminator="\n")


def read_csv(text: str) -> pd.DataFrame:
    """Parse CSV text produced by to_csv back into a DataFrame."""
    return pd.read_csv(io.StringIO(text), dtype={"Date": str})
