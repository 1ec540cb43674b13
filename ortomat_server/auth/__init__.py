"""
Auth module for Ortomat - credentials and admin tokens.
"""

from .passwords import hash_password, verify_password
from .tokens import Principal, create_access_token, decode_token, require_admin

__all__ = [
    "hash_password",
    "verify_password",
    "Principal",
    "create_access_token",
    "decode_token",
    "require_admin",
]
