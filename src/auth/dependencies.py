from fastapi import Depends, Header, HTTPException, status
from typing import Optional

from src.auth.schemas import Actor, ActorRole

def get_current_actor(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None)
) -> Actor:
    """Build the caller identity from the headers set by the auth gateway"""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate caller identity"
    )

    if not x_user_id or not x_user_role:
        raise credentials_exception

    try:
        return Actor(user_id=int(x_user_id), role=ActorRole(x_user_role.lower()))
    except ValueError:
        raise credentials_exception

def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    """Require admin role for access"""
    if not actor.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return actor
