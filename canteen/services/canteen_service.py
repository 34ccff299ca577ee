from typing import Optional, Tuple

from fastapi.concurrency import run_in_threadpool
from passlib.context import CryptContext

from canteen.models.canteen import Canteen

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Stored value is not a recognised hash
        return False


async def login_canteen(username: str, password: str) -> Optional[Tuple[int, str]]:
    """Returns (canteen_id, canteen_name) when the operator credentials match, else None."""
    canteen = await Canteen.get_or_none(username=username)
    if canteen is None:
        return None
    # bcrypt runs in the threadpool
    if not await run_in_threadpool(verify_password, password, canteen.password):
        return None
    return canteen.id, canteen.name


async def create_canteen(name: str, location: str, username: str, password: str) -> Canteen:
    hashed = await run_in_threadpool(get_password_hash, password)
    return await Canteen.create(name=name, location=location, username=username, password=hashed)
