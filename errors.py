"""Exception classes shared across the tracker."""


class FinanceTrackerError(Exception):
    """Base exception for the tracker."""
    pass


class DataAccessError(FinanceTrackerError):
    """The remote store rejected or failed a query or mutation."""
    pass


class NotFoundError(DataAccessError):
    """A keyed update or read matched no row."""
    pass


class ValidationError(FinanceTrackerError):
    """Form input failed a client-side check; raised before any store call."""
    pass


class AuthError(FinanceTrackerError):
    """Sign-in, sign-up or session errors."""
    pass


class LoadCancelled(FinanceTrackerError):
    """The view that requested a load went away before it finished."""
    pass
