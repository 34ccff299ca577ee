from datetime import timedelta

from jose import JWTError, jwt

from canteen.auth.config import AdminJwtConfig
from canteen.core.clock import epoch_seconds, utcnow

ALGORITHM = "HS256"


class AdminJwtError(Exception):
    pass


def issue_admin_jwt(canteen_id: int, cfg: AdminJwtConfig) -> str:
    now = utcnow()
    claims = {
        "iss": cfg.issuer,
        "aud": cfg.audience,
        "sub": str(canteen_id),
        "iat": epoch_seconds(now),
        "exp": epoch_seconds(now + timedelta(seconds=cfg.expiry_secs)),
    }
    return jwt.encode(claims, cfg.secret, algorithm=ALGORITHM)


def verify_admin_jwt(token: str, cfg: AdminJwtConfig) -> int:
    """Returns the canteen id carried in `sub`; raises AdminJwtError on any failure."""
    try:
        payload = jwt.decode(
            token,
            cfg.secret,
            algorithms=[ALGORITHM],
            audience=cfg.audience,
            issuer=cfg.issuer,
            options={"leeway": 0, "require_exp": True, "require_sub": True},
        )
    except JWTError as e:
        raise AdminJwtError(str(e)) from e
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError) as e:
        raise AdminJwtError(f"invalid sub: {e}") from e
