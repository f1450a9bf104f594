"""
Ledger - Source Package

Multi-tenant personal finance ledger backend: users record income and
expense transactions, group them into categories, and read them back as
filtered listings or a CSV export.

DESIGN PRINCIPLES:
1. Every read and write is scoped to the authenticated user
2. Storage failures are classified once, at the store boundary
3. Writes are all-or-nothing
4. Nothing is physically deleted
"""

__version__ = "1.0.0"
__author__ = "Ledger Team"
