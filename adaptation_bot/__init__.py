"""
Adaptation order bot: collects video adaptation orders in Telegram,
takes crypto payment and hands paid orders to the task board.
"""

__version__ = "0.1.0"
