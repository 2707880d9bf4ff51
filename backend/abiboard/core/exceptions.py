"""
Custom Exceptions for AbiBoard
==============================

Every error a request can end with is one of these. The API layer turns
them into a structured JSON body via ``error_response``; the status code
comes from the exception class.

Usage:
    from abiboard.core.exceptions import FieldNotFoundError, DeadlineExpiredError

    if not field:
        raise FieldNotFoundError(field_id)
"""

from typing import Optional, Any, Dict, List


class AbiBoardError(Exception):
    """Base exception for all AbiBoard errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(AbiBoardError):
    """No valid session"""

    status_code = 401

    def __init__(self, message: str = "Nicht authentifiziert."):
        super().__init__(message, code="AUTH_FAILED")


class InvalidTokenError(AuthenticationError):
    """Session token is invalid or expired"""

    def __init__(self):
        super().__init__("Ungültige oder abgelaufene Sitzung.")
        self.code = "INVALID_TOKEN"


class AuthorizationError(AbiBoardError):
    """Authenticated, but wrong role or not the owner"""

    status_code = 403

    def __init__(self, message: str = "Zugriff verweigert."):
        super().__init__(message, code="NOT_AUTHORIZED")


# ============================================
# Resource Errors (404-type)
# ============================================

class NotFoundError(AbiBoardError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, message: str, resource_type: str, resource_id: Optional[str] = None):
        details = {"resource_type": resource_type}
        if resource_id:
            details["resource_id"] = resource_id
        super().__init__(
            message,
            code=f"{resource_type.upper()}_NOT_FOUND",
            details=details
        )


class FieldNotFoundError(NotFoundError):
    """Profile field definition not found"""

    def __init__(self, field_id: str):
        super().__init__("Feld nicht gefunden.", "Field", field_id)


class UploadNotFoundError(NotFoundError):
    """Stored file not found"""

    def __init__(self, reference: str):
        super().__init__("Datei nicht gefunden.", "Upload", reference)


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(AbiBoardError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class InvalidImageError(ValidationError):
    """Uploaded file is not an acceptable image"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, field=field)
        self.code = "INVALID_IMAGE"


class IncompleteSubmissionError(AbiBoardError):
    """Submit attempted while required fields are missing"""

    status_code = 400

    def __init__(self, errors: List[str]):
        super().__init__(
            "Bitte fülle alle Pflichtfelder aus.",
            code="INCOMPLETE_SUBMISSION",
            details={"errors": list(errors)}
        )
        self.errors = list(errors)


# ============================================
# Lifecycle Errors
# ============================================

class DeadlineExpiredError(AbiBoardError):
    """Any mutating action after the submission deadline"""

    status_code = 403

    def __init__(self):
        super().__init__("Die Abgabefrist ist abgelaufen.", code="DEADLINE_EXPIRED")


class InvalidProfileStateError(AbiBoardError):
    """Action not allowed in the profile's current status"""

    status_code = 409

    def __init__(self, message: str, current_status: str):
        super().__init__(
            message,
            code="INVALID_PROFILE_STATE",
            details={"status": current_status}
        )


class ConflictError(AbiBoardError):
    """Uniqueness violation on create"""

    status_code = 409

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="CONFLICT", details=details)


class MethodNotAllowedError(AbiBoardError):
    """Operation is disabled for this resource"""

    status_code = 405

    def __init__(self, message: str):
        super().__init__(message, code="METHOD_NOT_ALLOWED")


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: AbiBoardError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "error": error.to_dict()
    }
