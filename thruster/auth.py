"""HTTP Basic Authentication for a route group.

Provides:
- ``accounts_from``: credential list -> username/password mapping
- ``parse_basic``: Authorization header -> credentials (UTF-8, RFC 7617)
- ``basic_auth``: the group's dependency list (empty when no credentials)
"""

import base64
import hmac
import logging
from typing import Dict, Iterable, List, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasicCredentials
from fastapi.security.utils import get_authorization_scheme_param

from thruster.config import HTTPAuth
from thruster.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

REALM = "Authorization Required"


def accounts_from(credentials: Iterable[HTTPAuth]) -> Dict[str, str]:
    """Build the username -> password mapping; a repeated username keeps its last password."""
    accounts: Dict[str, str] = {}
    for credential in credentials:
        accounts[credential.username] = credential.password
    return accounts


def parse_basic(authorization: Optional[str]) -> Optional[HTTPBasicCredentials]:
    """Decode a ``Basic`` Authorization header; None when absent or malformed."""
    scheme, param = get_authorization_scheme_param(authorization)
    if not authorization or scheme.lower() != "basic":
        return None
    try:
        decoded = base64.b64decode(param, validate=True).decode("utf-8")
    except ValueError:
        return None
    username, separator, password = decoded.partition(":")
    if not separator:
        return None
    return HTTPBasicCredentials(username=username, password=password)


def _matches(expected: str, presented: str) -> bool:
    return hmac.compare_digest(expected.encode("utf-8"), presented.encode("utf-8"))


def basic_auth(credentials: Iterable[HTTPAuth]) -> List:
    """Return the dependencies that gate a route group.

    Args:
        credentials: Accepted username/password pairs

    Returns:
        ``[]`` when there are no credentials, otherwise a single dependency that
        rejects the request with 401 unless the Authorization header carries a
        listed username with its exact password.
    """
    accounts = accounts_from(credentials)
    if not accounts:
        return []

    challenge = {"WWW-Authenticate": f'Basic realm="{REALM}"'}

    def verify_credentials(request: Request) -> str:
        presented = parse_basic(request.headers.get("Authorization"))
        expected = accounts.get(presented.username) if presented else None
        if expected is None or not _matches(expected, presented.password):
            logger.warning(
                "[%s] Basic auth rejected for user '%s' on %s %s",
                request_id_var.get(""),
                presented.username if presented else "",
                request.method,
                request.url.path,
            )
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authentication credentials",
                headers=challenge,
            )
        request.state.user = presented.username
        return presented.username

    return [Depends(verify_credentials)]
