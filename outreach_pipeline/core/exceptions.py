"""
Custom exceptions for the outreach pipeline.
Provides consistent error handling across the engine and the API.
"""
from fastapi import HTTPException, status


class OutreachPipelineException(Exception):
    """Base exception for the outreach pipeline"""
    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class NotFoundError(OutreachPipelineException):
    """Resource not found"""
    def __init__(self, resource: str = "Resource", resource_id: str = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        super().__init__(message)


class ValidationError(OutreachPipelineException):
    """Validation failed"""
    def __init__(self, message: str = "Validation failed", field: str = None):
        if field:
            message = f"Validation failed for field '{field}': {message}"
        super().__init__(message)


class ExternalServiceError(OutreachPipelineException):
    """External service call failed"""
    def __init__(self, service: str = "External service", message: str = None):
        msg = f"{service} call failed"
        if message:
            msg = f"{msg}: {message}"
        super().__init__(msg)


class NoProfileMatch(OutreachPipelineException):
    """No profile matches the contact's title"""
    reason = "no_profile_match"

    def __init__(self, title: str = None):
        self.title = title
        super().__init__(f'No profile found for title: "{title}"')


class NoTemplateForKind(OutreachPipelineException):
    """Matched profile has no current template of the requested kind"""
    reason = "no_template_for_kind"

    def __init__(self, kind: str, roles: list = None):
        self.kind = kind
        message = f"No current {kind} template"
        if roles:
            message = f"{message} for profile with roles: {', '.join(roles)}"
        super().__init__(message)


class InvalidSequenceNumber(ValidationError):
    """Template kind and sequence_number disagree"""
    def __init__(self, message: str):
        super().__init__(message, field="sequence_number")


class InvalidOutcomeTransition(OutreachPipelineException):
    """Outcome would move backward (or to an unknown value)"""
    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move outcome from '{current}' to '{requested}'")


class PersonalizationFailed(ExternalServiceError):
    """Text generation failed; the raw template is still usable"""
    reason = "personalization_failed"

    def __init__(self, message: str = None):
        super().__init__("Personalization service", message)


# HTTP Exception helpers
def raise_not_found(resource: str = "Resource", resource_id: str = None):
    """Raise 404 HTTPException"""
    err = NotFoundError(resource, resource_id)
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=err.message)


def raise_unauthorized(message: str = "Unauthorized"):
    """Raise 401 HTTPException"""
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=message)


def raise_validation_error(message: str = "Validation failed", field: str = None):
    """Raise 422 HTTPException"""
    err = ValidationError(message, field)
    raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=err.message)
