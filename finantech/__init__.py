"""
FinanTech - Source Package

A personal debt tracker: monthly expenses by creditor, paid/unpaid
status, and a spreadsheet-compatible CSV import/export.

DESIGN PRINCIPLES:
1. The store handle is owned by the caller and passed in
2. Only unpaid debts count towards totals
3. Import never overwrites existing data
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "FinanTech Team"
