import time

import httpx
import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk, jwt

from canteen.auth.admin_jwt import issue_admin_jwt
from canteen.auth.config import AdminJwtConfig, FirebaseAuthConfig
from canteen.auth.jwks import JwksCache
from canteen.core.db import close_db, init_db
from canteen.models.canteen import Canteen, MenuItem
from canteen.models.user import User

TEST_DB_URL = "sqlite://:memory:"
PROJECT_ID = "test-project"
JWKS_URL = "https://jwks.test/keys"
KID = "test-kid"


# --- DATABASE ---

@pytest_asyncio.fixture
async def db():
    """Fresh in-memory SQLite database with all canteen tables."""
    await init_db(TEST_DB_URL)
    yield
    await close_db()


async def make_canteen(name="Main Canteen", username=None, password="not-a-hash"):
    return await Canteen.create(
        name=name,
        location="Campus",
        username=username or name.lower().replace(" ", "-"),
        password=password,
    )


async def make_item(canteen, name="Veg Thali", price=120, stock=-1, is_available=True, is_veg=True, **extra):
    return await MenuItem.create(
        canteen=canteen, name=name, price=price, stock=stock, is_available=is_available, is_veg=is_veg, **extra
    )


async def make_user(external_id="firebase-uid-1", email="student@campus.edu"):
    return await User.create(external_id=external_id, email=email)


# --- TOKENS ---

@pytest.fixture(scope="session")
def rsa_keys():
    """(private PEM, public JWK with kid) for signing identity-provider tokens."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    public_pem = key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    public_jwk = jwk.construct(public_pem, "RS256").to_dict()
    public_jwk["kid"] = KID
    public_jwk["use"] = "sig"
    return private_pem, public_jwk


def make_user_token(private_pem, sub="firebase-uid-1", email="student@campus.edu", email_verified=True,
                    provider="google.com", kid=KID, **overrides):
    now = int(time.time())
    claims = {
        "iss": f"https://securetoken.google.com/{PROJECT_ID}",
        "aud": PROJECT_ID,
        "sub": sub,
        "iat": now,
        "exp": now + 3600,
        "email": email,
        "email_verified": email_verified,
        "name": "Test Student",
        "firebase": {"sign_in_provider": provider},
    }
    claims.update(overrides)
    return jwt.encode(claims, private_pem, algorithm="RS256", headers={"kid": kid})


def jwks_transport(keys, calls=None, cache_control="public, max-age=3600"):
    """MockTransport serving a JWKS document; appends to `calls` on every fetch."""
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(str(request.url))
        return httpx.Response(200, json={"keys": keys}, headers={"Cache-Control": cache_control})
    return httpx.MockTransport(handler)


@pytest.fixture
def admin_cfg():
    return AdminJwtConfig(secret="test-admin-secret")


@pytest.fixture
def firebase_cfg():
    return FirebaseAuthConfig(project_id=PROJECT_ID, jwks_url=JWKS_URL, allowed_domains=None)


# --- APPLICATION ---

@pytest.fixture
def auth_app(admin_cfg, firebase_cfg, rsa_keys):
    """The app wired to test auth settings and a JWKS cache backed by MockTransport."""
    from canteen.main import app

    saved = (app.state.admin_jwt, app.state.firebase, app.state.jwks)
    app.state.admin_jwt = admin_cfg
    app.state.firebase = firebase_cfg
    app.state.jwks = JwksCache(JWKS_URL, transport=jwks_transport([rsa_keys[1]]))
    yield app
    app.state.admin_jwt, app.state.firebase, app.state.jwks = saved


@pytest_asyncio.fixture
async def client(db, auth_app):
    transport = httpx.ASGITransport(app=auth_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def admin_headers(canteen_id, cfg):
    return {"Authorization": f"Bearer {issue_admin_jwt(canteen_id, cfg)}"}


def user_headers(private_pem, **claims):
    return {"Authorization": f"Bearer {make_user_token(private_pem, **claims)}"}
