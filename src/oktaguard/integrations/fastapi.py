from typing import Any, Generic, TypeVar

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..auth.claims import DefaultClaims
from ..auth.errors import InfrastructureError, TokenError
from ..auth.verifier import Verifier

logger = structlog.get_logger(__name__)
security = HTTPBearer(auto_error=False)

ClaimsT = TypeVar("ClaimsT")


def _unauthorized(error: str, description: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "error_description": description},
        headers={"WWW-Authenticate": "Bearer"},
    )


class OktaBearer(Generic[ClaimsT]):
    """
    FastAPI dependency: valid Bearer token -> verified claims

    Bad tokens answer 401; an unreachable or unreadable key set answers 503
    so clients can tell an outage from a rejected credential.
    """

    def __init__(self, verifier: Verifier, claims_type: type[ClaimsT] = DefaultClaims):
        self.verifier = verifier
        self.claims_type = claims_type

    async def __call__(
        self,
        credentials: HTTPAuthorizationCredentials | None = Depends(security),
    ) -> ClaimsT:
        if credentials is None:
            raise _unauthorized("invalid_request", "Authorization header missing")
        if credentials.scheme.lower() != "bearer":
            raise _unauthorized("invalid_request", "Bearer scheme required")

        try:
            return await self.verifier.verify(credentials.credentials, self.claims_type)
        except TokenError as e:
            raise _unauthorized("invalid_token", e.message) from e
        except InfrastructureError as e:
            logger.error("Key set unavailable", error=str(e))
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail={"error": "temporarily_unavailable", "error_description": "Unable to verify token"},
            ) from e


def _scopes(claims: Any) -> list[str]:
    if isinstance(claims, dict):
        scopes = claims.get("scp", [])
    else:
        scopes = getattr(claims, "scp", [])
    if isinstance(scopes, str):
        return scopes.split()
    return list(scopes or [])


def require_scope(bearer: OktaBearer, required_scope: str):
    """
    Dependency factory requiring a specific scope in the scp claim

    Args:
        bearer: The OktaBearer that verifies the token
        required_scope: The scope that is required
    """

    async def scope_checker(claims: Any = Depends(bearer)) -> Any:
        scopes = _scopes(claims)
        if required_scope not in scopes:
            logger.warning("Insufficient scope", required=required_scope, available=scopes)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "error": "insufficient_scope",
                    "error_description": f"Scope '{required_scope}' required",
                },
            )
        return claims

    return scope_checker
