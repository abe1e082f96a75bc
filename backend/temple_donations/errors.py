"""
Domain Errors — raised by services, mapped to HTTP responses in main.py.
"""


class DonationError(Exception):
    """Base class for every error raised by the donation services."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(DonationError):
    """Provider credentials or required settings are missing."""

    status_code = 500


class GatewayError(DonationError):
    """The payment gateway rejected a call or could not be reached."""

    status_code = 502


class MessagingError(DonationError):
    """The messaging provider rejected a send or the recipient is invalid."""

    status_code = 502


class ReceiptError(DonationError):
    """A receipt could not be rendered or persisted."""

    status_code = 500
