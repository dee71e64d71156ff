"""
Bot handlers registration.
"""

from aiogram import Dispatcher

from adaptation_bot.bot.handlers.start import router as start_router
from adaptation_bot.bot.handlers.operator import router as operator_router
from adaptation_bot.bot.handlers.order import router as order_router


def register_handlers(dp: Dispatcher) -> None:
    """Register all handlers to dispatcher."""
    # Order matters! Commands first, free text order input last
    dp.include_router(start_router)
    dp.include_router(operator_router)
    dp.include_router(order_router)
