"""Domain errors for the knock protocol and chat gate.

Each error carries a stable ``code`` that the HTTP layer returns verbatim, and
the status code it maps to.
"""


class KnockError(Exception):
    code = "knock_error"
    status_code = 400
    default_message = "Knock operation failed."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"ok": False, "error": self.code, "details": self.message}


class SelfTargetError(KnockError):
    code = "self_target"
    status_code = 400
    default_message = "You cannot knock yourself."


class TargetNotFoundError(KnockError):
    code = "target_not_found"
    status_code = 404
    default_message = "User not found."


class DuplicateEdgeError(KnockError):
    code = "duplicate_edge"
    status_code = 409
    default_message = "Already knocked this user."


class EdgeNotFoundOrNotEligibleError(KnockError):
    code = "edge_not_eligible"
    status_code = 404
    default_message = "Knock not found or already handled."


class ProfileHiddenError(KnockError):
    code = "profile_hidden"
    status_code = 403
    default_message = "This account is private."


class ChatRestrictedError(KnockError):
    code = "chat_restricted"
    status_code = 403
    default_message = "Chat is restricted. Recipient needs to reply to unlock."


class ChatNotFoundError(KnockError):
    code = "chat_not_found"
    status_code = 404
    default_message = "Chat not found or unauthorized."


class StoreUnavailableError(KnockError):
    code = "service_unavailable"
    status_code = 503
    default_message = "Service temporarily unavailable. Please retry."


class StaleEdgeError(Exception):
    """An edge changed between read and conditional write. Internal; retried."""
