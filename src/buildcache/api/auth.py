"""Bearer token check for artifact routes."""

from fastapi import Header, HTTPException, Request, status


def require_token(
    request: Request,
    authorization: str | None = Header(default=None),
) -> str:
    """Reject requests whose bearer token is not configured."""
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing Authorization header",
        )
    _, _, token = authorization.partition("Bearer ")
    if token not in request.app.state.tokens:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization token",
        )
    return token
