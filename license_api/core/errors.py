"""
Domain error taxonomy.

Every failure a component can surface is a LicenseError subclass carrying the
HTTP status and a stable machine-readable code. main.py renders them as
{"success": false, "message": ..., "code": ...}.
"""
from fastapi import status


class LicenseError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "error"

    def __init__(self, message: str = None):
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)


# ---- user-correctable input -------------------------------------------------

class ValidationError(LicenseError):
    """Invalid or missing input."""
    code = "validation_error"


# ---- lookups ----------------------------------------------------------------

class NotFound(LicenseError):
    """Referenced entity does not exist."""
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


# ---- uniqueness -------------------------------------------------------------

class Conflict(LicenseError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class DuplicateUsername(Conflict):
    """Username already taken"""
    code = "duplicate_username"


# ---- authentication / admission ---------------------------------------------

class AuthFailure(LicenseError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "auth_failure"


class InvalidCredentials(AuthFailure):
    """Invalid username or password"""
    code = "invalid_credentials"


class HardwareMismatch(AuthFailure):
    """Hardware ID mismatch - This account is locked to another computer"""
    status_code = status.HTTP_403_FORBIDDEN
    code = "hardware_mismatch"


class LicenseRequired(AuthFailure):
    """No active license for this account"""
    status_code = status.HTTP_403_FORBIDDEN
    code = "license_required"


class AdminRequired(AuthFailure):
    """Administrator privileges required"""
    status_code = status.HTTP_403_FORBIDDEN
    code = "admin_required"


# ---- webhook authenticity ---------------------------------------------------

class ExternalVerificationFailure(LicenseError):
    """Webhook signature verification failed"""
    code = "verification_failed"


# ---- infrastructure ---------------------------------------------------------

class TransientInfra(LicenseError):
    """Temporary infrastructure failure, safe to retry"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "transient_infra"


class PaymentProviderError(TransientInfra):
    """Payment provider request failed"""
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "payment_provider_error"


# ---- policy -----------------------------------------------------------------

class PolicyViolation(LicenseError):
    code = "policy_violation"


class NotCancellable(PolicyViolation):
    """This license cannot be cancelled"""
    code = "not_cancellable"


class NotLocked(PolicyViolation):
    """Account is not locked to any hardware"""
    code = "not_locked"


class CooldownActive(PolicyViolation):
    """Hardware ID was reset recently"""
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "cooldown_active"


class NotApproved(PolicyViolation):
    """Vouch must be approved before it can be featured"""
    code = "not_approved"


class VouchRejected(PolicyViolation):
    """Vouch has been rejected and can no longer be approved"""
    code = "vouch_rejected"
