"""Request-scoped collaborators for the routers."""

from fastapi import Header, HTTPException, Request

from marketplace.access import Actor, ActorRole


def current_actor(
    x_actor_id: str | None = Header(default=None),
    x_actor_role: str | None = Header(default=None),
) -> Actor:
    """The acting user, as asserted by the authentication proxy in front of the API."""
    if not x_actor_id or not x_actor_role:
        raise HTTPException(status_code=401, detail="Missing actor headers")
    try:
        role = ActorRole(x_actor_role.lower())
    except ValueError:
        raise HTTPException(status_code=401, detail=f"Unknown actor role: {x_actor_role}") from None
    if role is ActorRole.SYSTEM:
        raise HTTPException(status_code=401, detail="The system actor cannot call the API")
    return Actor(id=x_actor_id, role=role)


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"
