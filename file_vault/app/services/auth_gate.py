import base64
import secrets
from typing import List, Optional, Tuple

from fastapi import Depends, HTTPException, Request, status
from fastapi.security.utils import get_authorization_scheme_param

from file_vault.config import Credentials
from file_vault.logger_config import setup_logger

logger = setup_logger()

REALM = "Restricted"


def parse_basic_authorization(authorization: Optional[str]) -> Optional[Tuple[str, str]]:
    """Extract (username, password) from a Basic Authorization header.

    The payload is decoded as UTF-8, so non-ASCII credentials work. Returns
    None for a missing, non-Basic or malformed header.
    """
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
    return username, password


class BasicAuthGate:
    """FastAPI dependency enforcing a single static Basic username/password.

    Missing, malformed and wrong credentials all get the same 401 response so
    a caller cannot tell which one was the case.
    """

    def __init__(self, credentials: Credentials):
        self._credentials = credentials

    def _unauthorized(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": f'Basic realm="{REALM}"'},
        )

    def is_valid(self, supplied: Optional[Tuple[str, str]]) -> bool:
        if supplied is None:
            return False
        username, password = supplied
        # Evaluate both comparisons so timing does not reveal which field was wrong
        user_ok = secrets.compare_digest(username.encode(), self._credentials.username.encode())
        pass_ok = secrets.compare_digest(password.encode(), self._credentials.password.encode())
        return user_ok and pass_ok

    async def __call__(self, request: Request) -> str:
        supplied = parse_basic_authorization(request.headers.get("Authorization"))

        if not self.is_valid(supplied):
            logger.warning(f"Rejected unauthenticated request: {request.method} {request.url.path}")
            raise self._unauthorized()

        return supplied[0]


def protect(credentials: Credentials) -> List:
    """Route dependencies that put an endpoint behind Basic authentication."""
    return [Depends(BasicAuthGate(credentials))]
