from dataclasses import dataclass
from typing import Optional

from jose import JWTError, jwt

from canteen.auth.config import FirebaseAuthConfig
from canteen.auth.jwks import JwksCache, JwksKeyNotFound

ALGORITHM = "RS256"
GOOGLE_PROVIDER = "google.com"


class FirebaseAuthError(Exception):
    pass


@dataclass
class VerifiedFirebaseUser:
    uid: str
    email: Optional[str]
    email_verified: bool
    display_name: Optional[str]
    photo_url: Optional[str]


async def verify_firebase_token(token: str, cfg: FirebaseAuthConfig, cache: JwksCache) -> VerifiedFirebaseUser:
    """Verifies an identity-provider ID token and applies the configured claim policy."""
    if not cfg.project_id:
        raise FirebaseAuthError("project id not configured")

    try:
        header = jwt.get_unverified_header(token)
    except JWTError as e:
        raise FirebaseAuthError(f"token header error: {e}") from e
    kid = header.get("kid")
    if not kid:
        raise FirebaseAuthError("token header error: kid missing")
    if header.get("alg") != ALGORITHM:
        raise FirebaseAuthError("alg must be RS256")

    try:
        key = await cache.get_key(kid)
    except JwksKeyNotFound as e:
        raise FirebaseAuthError(f"jwks error: {e}") from e

    try:
        claims = jwt.decode(
            token,
            key,
            algorithms=[ALGORITHM],
            audience=cfg.project_id,
            issuer=cfg.issuer,
            options={"leeway": cfg.leeway_secs, "require_sub": True},
        )
    except JWTError as e:
        raise FirebaseAuthError(f"verification error: {e}") from e

    sub = claims.get("sub")
    if not sub:
        raise FirebaseAuthError("claim mismatch: sub missing")

    provider = (claims.get("firebase") or {}).get("sign_in_provider", "")
    if cfg.require_google_provider and provider != GOOGLE_PROVIDER:
        raise FirebaseAuthError("claim mismatch: provider mismatch")

    email_verified = bool(claims.get("email_verified", False))
    if cfg.require_email_verified and not email_verified:
        raise FirebaseAuthError("claim mismatch: email not verified")

    email = claims.get("email")
    if cfg.allowed_domains is not None and email is not None:
        domain = email.split("@")[1].lower() if "@" in email else ""
        if domain not in cfg.allowed_domains:
            raise FirebaseAuthError("claim mismatch: email domain not allowed")

    return VerifiedFirebaseUser(
        uid=sub,
        email=email,
        email_verified=email_verified,
        display_name=claims.get("name"),
        photo_url=claims.get("picture"),
    )
