"""
External service adapters: payment gateway and task store.
"""
