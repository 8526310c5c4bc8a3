"""
Authentication Module
Session tokens and admin access
"""

from cats_admin.auth.dependencies import (
    create_access_token,
    decode_access_token,
    is_admin,
    get_current_user,
    get_admin
)

__all__ = [
    "create_access_token",
    "decode_access_token",
    "is_admin",
    "get_current_user",
    "get_admin",
]
