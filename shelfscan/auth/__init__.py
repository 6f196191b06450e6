# Auth: bearer token verification (owner identity)
from shelfscan.auth.session import create_token, verify_token

__all__ = ["create_token", "verify_token"]
