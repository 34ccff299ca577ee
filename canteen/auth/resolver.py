import logging

from canteen.auth.admin_jwt import AdminJwtError, verify_admin_jwt
from canteen.auth.config import AdminJwtConfig, FirebaseAuthConfig
from canteen.auth.firebase import FirebaseAuthError, verify_firebase_token
from canteen.auth.jwks import JwksCache
from canteen.auth.principal import AdminPrincipal, Principal, UserPrincipal
from canteen.core.errors import UnauthenticatedError
from canteen.services.user_service import upsert_user

log = logging.getLogger("canteen.auth")


async def resolve_principal(
    token: str,
    admin_cfg: AdminJwtConfig,
    firebase_cfg: FirebaseAuthConfig,
    jwks: JwksCache,
) -> Principal:
    """
    Maps a bearer token to a principal. Operator tokens are tried first, then
    identity-provider tokens; a verified end user is upserted so their internal
    id survives token renewals.
    """
    try:
        return AdminPrincipal(canteen_id=verify_admin_jwt(token, admin_cfg))
    except AdminJwtError as e:
        log.debug(f"Not an operator token: {e}")

    try:
        verified = await verify_firebase_token(token, firebase_cfg, jwks)
    except FirebaseAuthError as e:
        log.debug(f"Identity token rejected: {e}")
        raise UnauthenticatedError("unauthorized") from e

    try:
        user = await upsert_user(
            external_id=verified.uid,
            email=verified.email,
            display_name=verified.display_name,
            photo_url=verified.photo_url,
            email_verified=verified.email_verified,
        )
    except Exception as e:
        log.error(f"User upsert failed for {verified.uid}: {e}")
        raise UnauthenticatedError("user upsert failed") from e

    return UserPrincipal(user_id=user.id, external_id=verified.uid, email=verified.email)
