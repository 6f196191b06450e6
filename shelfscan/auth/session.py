"""Bearer token verification.

Owner identity comes from a JWT signed by the identity provider with the
shared ``auth.secret_key``. Verification is stateless: signature, ``exp``
and (when configured) ``iss`` / ``aud`` are checked, and the ``sub`` claim
is the owner id the rest of the service scopes data by.

``create_token`` signs with the same key. The service itself never hands
tokens out; it exists for tests and ``scripts/issue_dev_token.py``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

logger = logging.getLogger(__name__)


def _auth_settings():
    from config.settings import settings
    return settings.auth


def create_token(owner_id: str, expire_hours: Optional[float] = None) -> str:
    """Sign and return a JWT whose ``sub`` is *owner_id*.

    Args:
        owner_id: Opaque owner identifier.
        expire_hours: Lifetime in hours; defaults to ``settings.auth.token_expire_hours``.
    """
    auth = _auth_settings()
    hours = expire_hours if expire_hours is not None else auth.token_expire_hours
    now = datetime.now(tz=timezone.utc)
    payload = {
        "sub": owner_id,
        "iat": now,
        "exp": now + timedelta(hours=hours),
    }
    if auth.issuer:
        payload["iss"] = auth.issuer
    if auth.audience:
        payload["aud"] = auth.audience
    return jwt.encode(payload, auth.secret_key, algorithm=auth.algorithm)


def verify_token(token: str) -> Optional[str]:
    """Return the owner id (``sub`` claim) if *token* is valid, else None."""
    if not token:
        return None
    auth = _auth_settings()
    options = {"require": ["exp", "sub"]}
    kwargs = {}
    if auth.issuer:
        kwargs["issuer"] = auth.issuer
    if auth.audience:
        kwargs["audience"] = auth.audience
    else:
        options["verify_aud"] = False
    try:
        payload = jwt.decode(
            token,
            auth.secret_key,
            algorithms=[auth.algorithm],
            options=options,
            **kwargs,
        )
    except jwt.ExpiredSignatureError:
        logger.debug("rejected expired token")
        return None
    except jwt.InvalidTokenError as e:
        logger.debug("rejected invalid token: %s", e)
        return None

    owner_id = payload.get("sub")
    if not owner_id or not isinstance(owner_id, str):
        return None
    return owner_id
