"""
Payment layer: ledger of pending invoices, reconciler and payment service.
"""
