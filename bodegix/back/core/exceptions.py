# bodegix/back/core/exceptions.py
from typing import Optional


class QrAccessError(Exception):
    """Base for every QR access failure. `outcome` is what callers see."""

    outcome = "error"
    default_message = "QR access error"

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None):
        self.message = message or self.default_message
        self.code = code
        super().__init__(self.message)


# ===== issuance =====

class ConflictError(QrAccessError):
    outcome = "conflict"
    default_message = "Code already exists"


class CodeGenerationError(QrAccessError):
    outcome = "generation_failed"
    default_message = "Could not generate a unique code, request a new one"


class UnknownLocker(QrAccessError):
    outcome = "unknown_locker"
    default_message = "Locker not found"


# ===== validation =====

class InvalidCode(QrAccessError):
    outcome = "invalid_code"
    default_message = "No code found in scanned payload"


class UnknownCode(QrAccessError):
    outcome = "unknown_code"
    default_message = "Code was never issued"


NotFound = UnknownCode


class AlreadyUsed(QrAccessError):
    outcome = "already_used"
    default_message = "Code already used"


class Expired(QrAccessError):
    outcome = "expired"
    default_message = "Code expired"


class AuthorizationError(QrAccessError):
    outcome = "unauthorized"
    default_message = "Code is not valid for this tenant or locker"
