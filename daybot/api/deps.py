# daybot/api/deps.py

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from daybot.core.services import Services


def get_services(request: Request) -> Services:
    services: Optional[Services] = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Services not initialized")
    return services


def require_admin(
    services: Services = Depends(get_services),
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
) -> None:
    """Endpoints de operación: requieren X-Admin-Token == ADMIN_TOKEN."""
    admin_token = services.settings.admin_token
    if not admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
