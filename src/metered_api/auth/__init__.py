"""Authentication module."""

from metered_api.auth.api_keys import extract_api_key, generate_api_key, mask_api_key

__all__ = ["extract_api_key", "generate_api_key", "mask_api_key"]
