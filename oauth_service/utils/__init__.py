"""Utility modules"""

from oauth_service.utils.crypto import constant_time_compare, generate_token, mask_token

__all__ = [
    "generate_token",
    "constant_time_compare",
    "mask_token",
]
