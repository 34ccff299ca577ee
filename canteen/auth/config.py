import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_JWKS_URL = "https://www.googleapis.com/service_accounts/v1/jwk/securetoken@system.gserviceaccount.com"


def _flag(key: str, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None:
        return default
    return raw == "1" or raw.lower() == "true"


@dataclass
class AdminJwtConfig:
    secret: str
    issuer: str = "canteen-auth"
    audience: str = "admin"
    expiry_secs: int = 12 * 60 * 60

    @classmethod
    def from_env(cls) -> "AdminJwtConfig":
        return cls(
            secret=os.getenv("ADMIN_JWT_SECRET", "dev-admin-secret"),
            issuer=os.getenv("ADMIN_JWT_ISSUER", "canteen-auth"),
            audience=os.getenv("ADMIN_JWT_AUDIENCE", "admin"),
            expiry_secs=int(os.getenv("ADMIN_JWT_EXPIRY_SECS", 12 * 60 * 60)),
        )


@dataclass
class FirebaseAuthConfig:
    project_id: str
    jwks_url: str = DEFAULT_JWKS_URL
    leeway_secs: int = 60
    cache_ttl_secs: int = 3600
    require_google_provider: bool = True
    require_email_verified: bool = True
    allowed_domains: Optional[List[str]] = field(default=None)

    @property
    def issuer(self) -> str:
        return f"https://securetoken.google.com/{self.project_id}"

    @classmethod
    def from_env(cls) -> "FirebaseAuthConfig":
        domains = os.getenv("ALLOWED_GOOGLE_DOMAINS")
        return cls(
            project_id=os.getenv("FIREBASE_PROJECT_ID", ""),
            jwks_url=os.getenv("FIREBASE_JWKS_URL", DEFAULT_JWKS_URL),
            leeway_secs=int(os.getenv("FIREBASE_LEEWAY_SECS", 60)),
            cache_ttl_secs=int(os.getenv("FIREBASE_JWKS_CACHE_TTL_SECS", 3600)),
            require_google_provider=_flag("FIREBASE_REQUIRE_GOOGLE_PROVIDER", True),
            require_email_verified=_flag("FIREBASE_REQUIRE_EMAIL_VERIFIED", True),
            allowed_domains=(
                [d.strip().lower() for d in domains.split(",") if d.strip()]
                if domains is not None else None
            ),
        )
