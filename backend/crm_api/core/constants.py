from enum import Enum, IntEnum


class UserRole(str, Enum):
    CONSTRUCTOR_ADMIN = "constructor-admin"
    O_MANAGER = "o-manager"
    EXECUTOR = "executor"
    OPERATOR = "operator"


class DefaultStatus(IntEnum):
    ACTIVE = 1
    INACTIVE = 0


class StoreErrorCode(IntEnum):
    # SQLSTATE integrity class
    NOT_NULL_VIOLATION = 23502
    UNIQUE_VIOLATION = 23505
    CHECK_VIOLATION = 23514


INTERNAL_SERVER_ERROR = "Internal Server Error"
INVALID_CREDENTIALS = "Invalid username or password"
USER_NOT_FOUND = "User not found"

PASSWORD_SPECIALS = "@$!%*?&-_()"
ERROR_MESSAGE_FOR_PASSWORD = (
    "Password too weak. Must include uppercase, lowercase, number, and special character."
)
