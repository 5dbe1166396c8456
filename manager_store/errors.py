"""
Error taxonomy shared by the credential store, session issuer and repositories.

Every error carries the HTTP status the API reports it with and a message
that is safe to show to the client.
"""


class ManagerError(Exception):
    status_code = 500
    default_message = "Internal error."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ManagerError):
    status_code = 400
    default_message = "Invalid request."


class DuplicateUsername(ManagerError):
    status_code = 400
    default_message = "Username already exists."


class InvalidCredentials(ManagerError):
    status_code = 400
    default_message = "Invalid username or password."


class AuthError(ManagerError):
    status_code = 401
    default_message = "Could not validate credentials."


class MissingToken(AuthError):
    default_message = "No token provided."


class InvalidToken(AuthError):
    default_message = "Invalid token."


class ExpiredToken(AuthError):
    default_message = "Token has expired."


class NotFound(ManagerError):
    status_code = 404
    default_message = "Not found."
