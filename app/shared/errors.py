"""Domain errors - mapped to HTTP responses by the handlers registered in main.py"""

from typing import Optional


class ReserveError(Exception):
    """Base class for every error the API reports with a JSON envelope"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_body(self) -> dict:
        return {"error": self.message}


class ValidationError(ReserveError):
    status_code = 400


class AuthenticationError(ReserveError):
    status_code = 401


class AuthorizationError(ReserveError):
    status_code = 403


class NotFoundError(ReserveError):
    status_code = 404


class NewUserError(ReserveError):
    """
    First login of an unknown LINE account without a phone number.

    Not a hard failure: the client uses the attached LINE profile to
    continue registration and calls /auth/login again with a phone.
    """

    status_code = 400

    def __init__(self, line_id: str, display_name: str, picture_url: Optional[str] = None):
        super().__init__("Please provide a mobile phone number")
        self.line_profile = {
            "lineId": line_id,
            "displayName": display_name,
            "pictureUrl": picture_url,
        }

    def to_body(self) -> dict:
        return {"error": self.message, "isNewUser": True, "lineProfile": self.line_profile}
