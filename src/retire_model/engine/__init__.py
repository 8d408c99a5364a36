# Copyright 2025 Spencer Williams
#
# Use of this source code is governed by an MIT license:
# https://github.com/sw23/life-model/blob/main/LICENSE

"""
Cash-flow simulation engine.

Deterministic month-by-month ledger for a single scenario, plus CSV export.
"""

from .withdrawals import Withdrawal, process_withdrawals
from .cashflow import CashFlowEngine, MonthlyLedgerEntry, SimulationResult, simulate
from .export import ledger_frame, to_csv, read_csv

__all__ = [
    'Withdrawal',
    'process_withdrawals',
    'CashFlowEngine',
    'MonthlyLedgerEntry',
    'SimulationResult',
    'simulate',
    'ledger_frame',
    'to_csv',
    'read_csv',
]
