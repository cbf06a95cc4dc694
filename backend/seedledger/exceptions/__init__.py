"""Domain exceptions raised by the core services.

The web layer renders them through the unified error handler; services raise them
after rolling back whatever they had written in the current transaction.
"""


class LedgerError(Exception):
    """Base exception for all domain errors."""
    title = 'Error'

    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['status'] = self.status_code
        rv['title'] = self.title
        rv['detail'] = self.message
        return rv


class Forbidden(LedgerError):
    """Role or ownership check failed."""
    title = 'Forbidden'

    def __init__(self, message="Not allowed for your role"):
        super().__init__(message, 403)


class NotFound(LedgerError):
    """Record, group, member or user missing."""
    title = 'Not Found'

    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class InvalidInput(LedgerError):
    title = 'Bad Request'

    def __init__(self, message, payload=None):
        super().__init__(message, 400, payload)


class InsufficientQuota(LedgerError):
    """Weekly seed limit of a group cannot cover the requested quantity."""
    title = 'Insufficient Quota'

    def __init__(self, group_id, requested, remaining, total):
        self.group_id = group_id
        self.requested = requested
        self.remaining = remaining
        self.total = total
        message = f"Insufficient weekly limit: {remaining} of {total} remaining, {requested} requested"
        super().__init__(message, 409, {
            'group_id': group_id,
            'requested': requested,
            'remaining': remaining,
            'total': total,
        })


class Conflict(LedgerError):
    """Unique constraint or reference conflict."""
    title = 'Conflict'

    def __init__(self, message, payload=None):
        super().__init__(message, 409, payload)


class QuotaStoreError(LedgerError):
    """Weekly limit row could neither be created nor read back after a conflict."""
    title = 'Internal Server Error'

    def __init__(self, group_id, week_start):
        super().__init__(
            f"Weekly limit for group {group_id} week {week_start} unavailable after retry",
            500,
        )
