"""
Core logic: order form, payment ledger and reconciliation.
"""
