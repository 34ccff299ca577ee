import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, status

from canteen.api.v1.canteen import router as canteen_router
from canteen.api.v1.holds import router as holds_router
from canteen.api.v1.orders import router as orders_router
from canteen.api.v1.users import router as users_router
from canteen.auth.config import AdminJwtConfig, FirebaseAuthConfig
from canteen.auth.jwks import JwksCache
from canteen.auth.middleware import AuthMiddleware
from canteen.core.config import HOLD_SWEEP_INTERVAL_SECS, PORT, PROJECT_NAME, VERSION
from canteen.core.db import close_db, init_db
from canteen.core.exception_handlers import setup_exception_handlers
from canteen.workers.hold_sweeper import HoldSweeper

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
log = logging.getLogger("canteen")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handles startup and shutdown events."""
    log.info(f"Starting {PROJECT_NAME} v{VERSION}...")
    await init_db()  # Connect to DB and generate schemas
    sweeper = HoldSweeper(interval_secs=HOLD_SWEEP_INTERVAL_SECS)
    sweeper.start()
    yield
    await sweeper.stop()
    await close_db()
    log.info(f"{PROJECT_NAME} stopped.")


app = FastAPI(
    title=PROJECT_NAME,
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Auth settings and the signing-key cache are process wide; tests replace them on app.state
app.state.admin_jwt = AdminJwtConfig.from_env()
app.state.firebase = FirebaseAuthConfig.from_env()
app.state.jwks = JwksCache(app.state.firebase.jwks_url, app.state.firebase.cache_ttl_secs)

app.add_middleware(AuthMiddleware)

# Include routers for modular API structure
app.include_router(holds_router, prefix="/orders", tags=["Holds"])
app.include_router(orders_router, prefix="/orders", tags=["Orders"])
app.include_router(users_router, prefix="/users", tags=["Users"])
app.include_router(canteen_router, prefix="/canteen", tags=["Canteen"])

setup_exception_handlers(app)


@app.get("/", status_code=status.HTTP_200_OK)
async def root():
    return {"status": "ok", "message": "Server up!"}


@app.get("/health", status_code=status.HTTP_200_OK)
async def health_check():
    """Simple health check endpoint."""
    return {"status": "ok", "app_name": PROJECT_NAME}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("canteen.main:app", host="0.0.0.0", port=PORT)
