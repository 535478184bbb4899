"""Customer identity dependencies.

The session token is resolved against the commerce API; whatever customer it
returns is trusted as-is.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException

from releasegate.commerce.models import CommerceCustomer
from releasegate.common.exceptions import UnauthenticatedError


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def current_customer(
    authorization: Optional[str] = Header(None),
) -> Optional[CommerceCustomer]:
    """FastAPI dependency: the signed-in customer, or None."""
    token = bearer_token(authorization)
    if token is None:
        return None

    from releasegate.deps import get_commerce_client
    return await get_commerce_client().get_customer(token)


async def require_customer(
    customer: Optional[CommerceCustomer] = Depends(current_customer),
) -> CommerceCustomer:
    """FastAPI dependency that rejects anonymous requests with 401."""
    if customer is None:
        err = UnauthenticatedError()
        raise HTTPException(status_code=err.http_status, detail=err.detail())
    return customer
