"""Error handling utilities."""


class HomeNestError(Exception):
    """Base exception for the HomeNest backend."""
    pass


class SupabaseError(HomeNestError):
    """Supabase operation error."""
    pass


class ImportValidationError(HomeNestError):
    """Import request rejected before any write."""
    pass


class ConfirmationRequiredError(ImportValidationError):
    """Destructive replace import attempted without the typed confirmation."""
    pass


class QueueValidationError(HomeNestError):
    """Invalid queue number or lead selection."""
    pass


class DispatchValidationError(HomeNestError):
    """Dispatch cannot start (no scenario/agent, outside schedule, nothing queued)."""
    pass


class QueueBusyError(HomeNestError):
    """Queue is currently sending and cannot be cleared."""
    pass


class WebhookError(HomeNestError):
    """Workflow webhook delivery failed."""
    pass


class TelephonyError(HomeNestError):
    """Telephony call initiation failed."""
    pass


class RequestValidationError(HomeNestError):
    """Malformed request body or parameters."""
    pass
