"""Authentication package."""

from mindmoney.auth.verifier import (
    TokenClaims,
    TokenVerifier,
    extract_bearer_token,
)

__all__ = [
    "TokenClaims",
    "TokenVerifier",
    "extract_bearer_token",
]
