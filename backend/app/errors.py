from enum import Enum


class ErrorType(Enum):
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    NOT_ACCEPTABLE = "not_acceptable"
    CONFLICT = "conflict"
    TOKEN_EXPIRED = "token_expired"
    UNPROCESSABLE = "unprocessable"
    INTERNAL_ERROR = "internal_error"


# Map error types to HTTP status codes
ERROR_STATUS_MAP = {
    ErrorType.BAD_REQUEST: 400,
    ErrorType.UNAUTHORIZED: 401,
    ErrorType.FORBIDDEN: 403,
    ErrorType.NOT_FOUND: 404,
    ErrorType.NOT_ACCEPTABLE: 406,
    ErrorType.CONFLICT: 409,
    ErrorType.TOKEN_EXPIRED: 410,
    ErrorType.UNPROCESSABLE: 422,
    ErrorType.INTERNAL_ERROR: 500,
}
