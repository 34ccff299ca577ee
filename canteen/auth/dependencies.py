from fastapi import Depends, HTTPException, Request, status

from canteen.auth.principal import AdminPrincipal, Principal, UserPrincipal


def get_principal(request: Request) -> Principal:
    principal = getattr(request.state, "principal", None)
    if principal is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unauthorized")
    return principal


def require_user(principal: Principal = Depends(get_principal)) -> UserPrincipal:
    if not isinstance(principal, UserPrincipal):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User credentials required")
    return principal


def require_admin(principal: Principal = Depends(get_principal)) -> AdminPrincipal:
    if not isinstance(principal, AdminPrincipal):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Canteen operator credentials required")
    return principal
