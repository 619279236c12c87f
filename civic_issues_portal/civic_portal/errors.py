"""
Typed failures raised by the services and turned into JSON responses by
``civic_portal.api.ApiView``.
"""


class ApiError(Exception):
    status_code = 500
    default_message = "Server error"

    def __init__(self, message=None, errors=None):
        self.message = message or self.default_message
        self.errors = errors or {}
        super().__init__(self.message)

    def as_dict(self):
        body = {"message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(ApiError):
    status_code = 400
    default_message = "Invalid request"

    @classmethod
    def from_form(cls, form, message=None):
        errors = {field: [str(error) for error in field_errors] for field, field_errors in form.errors.items()}
        first_error = next((messages[0] for messages in errors.values() if messages), None)
        return cls(message or first_error, errors=errors)

    @classmethod
    def for_field(cls, field, message):
        return cls(message, errors={field: [message]})


class AuthenticationError(ApiError):
    status_code = 401
    default_message = "Not authorized"


class AuthorizationError(ApiError):
    status_code = 403
    default_message = "Unauthorized"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Not found"


class PersistenceError(ApiError):
    status_code = 500
    default_message = "Server error"
