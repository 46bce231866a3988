"""
best-effort access token payload decoding.

the result is for display only (status output, "logged in as" lines).
the signature is never checked, so nothing here may feed an authorization
decision: the server stays the sole authority on whether a token is valid.
"""
import jwt

from .models import Claims, ClaimDecodeError, ClaimsResult


def decode_claims(token: str) -> ClaimsResult:
    """decode an access token payload without verifying it."""
    try:
        payload = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError as e:
        return ClaimDecodeError(reason=str(e))

    if not isinstance(payload, dict):
        return ClaimDecodeError(reason="payload is not a JSON object")

    exp = payload.get("exp")
    if exp is not None:
        try:
            exp = int(exp) * 1000
        except (TypeError, ValueError):
            exp = None

    return Claims(
        username=_as_str(payload.get("username")),
        role=_as_str(payload.get("role")),
        subject=_as_str(payload.get("sub")),
        exp=exp,
    )


def _as_str(value):
    return None if value is None else str(value)
