"""
Telegram transport: bot setup, handlers, keyboards and notifier.
"""
