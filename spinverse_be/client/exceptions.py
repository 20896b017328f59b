"""
Errors raised by the client toolkit.
"""


class ClientError(Exception):
    """Base error for calls made against the SpinVerse API."""

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload or {}

    @classmethod
    def from_response(cls, response):
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        # Rate-limit responses use {"error": {...}}, everything else the status envelope
        error = payload.get('error')
        if isinstance(error, dict):
            message = error.get('message')
        else:
            message = payload.get('status_message')
        return cls(message or f"Request failed with status {response.status_code}",
                   status_code=response.status_code, payload=payload)


class InsufficientBalanceError(ClientError):
    pass


class TransactionError(ClientError):
    pass
