# Authentication module

from abiboard.modules.auth.dependencies import (
    get_current_user,
    get_current_admin,
    get_current_student,
)

__all__ = [
    "get_current_user",
    "get_current_admin",
    "get_current_student",
]
