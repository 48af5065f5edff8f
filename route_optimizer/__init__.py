"""
Route Optimizer — AI-assisted address validation and route ordering.

Architecture: Spreadsheet → Batches → AI validation → Reconciliation → AI route → Integrity check
Philosophy:  Trust the AI to parse. Trust only code to reconcile.
"""

__version__ = "1.0.0"
