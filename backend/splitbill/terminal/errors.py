class BillApiError(Exception):
    """A backend call made by the terminal failed. str(exc) is shown to the user."""


class NotAuthenticatedError(BillApiError):
    pass


class NotFoundError(BillApiError):
    pass


class RequestRejectedError(BillApiError):
    """The backend refused the request (validation, duplicate reference, ...)."""


class TransportError(BillApiError):
    """The request never got a response (connection refused, timeout, ...)."""
