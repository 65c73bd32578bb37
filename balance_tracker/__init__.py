"""
Balance Tracker - Source Package

A personal weekly balance ledger: record how much money sits in each
account once a week, then read back per-week totals and per-account
trends.

DESIGN PRINCIPLES:
1. One record per account per week (saving again updates it)
2. Storage layer is swappable (memory, JSON file, SQLite, Google Sheets)
3. Summaries and trends are derived on read, never stored
4. Every change must be auditable
"""

__version__ = "1.0.0"
__author__ = "Balance Tracker Team"
