"""
Error taxonomy shared by the conversation and payment layers.
"""


class AdaptationBotError(Exception):
    """Base class for all bot errors."""


class ValidationError(AdaptationBotError):
    """Bad user input. Handled inside the conversation engine."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class GatewayError(AdaptationBotError):
    """Invoice creation or status poll failed."""


class StoreError(AdaptationBotError):
    """Task store rejected or failed to create a task."""


class NotifyError(AdaptationBotError):
    """Message delivery to a user failed."""


class OrphanPaymentError(AdaptationBotError):
    """Invoice is paid at the gateway but unknown to the ledger."""

    def __init__(self, invoice_id: str):
        super().__init__(f"Invoice {invoice_id} is paid but has no ledger entry")
        self.invoice_id = invoice_id
