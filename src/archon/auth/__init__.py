"""credential and token lifecycle management."""
from .models import TokenData, TokenUser, Claims, ClaimDecodeError, ClaimsResult
from .store import TokenStore
from .claims import decode_claims
from .manager import TokenManager, is_token_expired
from .resolver import CredentialResolver, AuthState

__all__ = [
    "TokenData",
    "TokenUser",
    "Claims",
    "ClaimDecodeError",
    "ClaimsResult",
    "TokenStore",
    "decode_claims",
    "TokenManager",
    "is_token_expired",
    "CredentialResolver",
    "AuthState",
]
