"""
Error taxonomy shared by the stores and the API layer.

Every caller-input fault is a ``CatalogError`` subclass carrying the HTTP
status it maps to. Anything else that escapes a store is an internal fault.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Broad error categories reported to API clients."""
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    BAD_CREDENTIAL = "bad_credential"
    MALFORMED = "malformed"


class CatalogError(Exception):
    """Base class for faults caused by caller input."""

    kind: ErrorKind = ErrorKind.MALFORMED
    status_code: int = 400
    message: str = "bad request"

    def __init__(self, message: str = None):
        self.message = message or self.message
        super().__init__(self.message)


# Conflicts at signup

class UsernameTaken(CatalogError):
    kind = ErrorKind.CONFLICT
    status_code = 409
    message = "username is in use by another account"


class EmailTaken(CatalogError):
    kind = ErrorKind.CONFLICT
    status_code = 409
    message = "email is in use by another account"


class PhoneTaken(CatalogError):
    kind = ErrorKind.CONFLICT
    status_code = 409
    message = "phone number is in use by another account"


# Lookups

class UserNotFound(CatalogError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404
    message = "no user was found or multiple users were found"


class BookNotFound(CatalogError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404
    message = "no such book exists"


class PermissionDenied(CatalogError):
    kind = ErrorKind.PERMISSION_DENIED
    status_code = 403
    message = "permission denied"


# Credentials

class IncorrectPassword(CatalogError):
    kind = ErrorKind.BAD_CREDENTIAL
    status_code = 401
    message = "incorrect password"


class EmptyToken(CatalogError):
    kind = ErrorKind.BAD_CREDENTIAL
    status_code = 401
    message = "empty token string"


class InvalidSignature(CatalogError):
    kind = ErrorKind.BAD_CREDENTIAL
    status_code = 401
    message = "invalid token"


class Unverifiable(CatalogError):
    kind = ErrorKind.BAD_CREDENTIAL
    status_code = 401
    message = "can not validate the user token"


class Unauthorized(CatalogError):
    kind = ErrorKind.BAD_CREDENTIAL
    status_code = 401
    message = "token has expired"


class MalformedRequest(CatalogError):
    kind = ErrorKind.MALFORMED
    status_code = 400
    message = "could not parse the request body"
