import pytest

from canteen.models.canteen import Canteen
from canteen.services.canteen_service import create_canteen, login_canteen, verify_password


class TestCanteenLogin:

    @pytest.mark.asyncio
    async def test_password_is_stored_hashed(self, db):
        canteen = await create_canteen("Main", "Campus", "main-op", "pw-123")
        stored = (await Canteen.get(id=canteen.id)).password
        assert stored != "pw-123"
        assert stored.startswith("$2")

    @pytest.mark.asyncio
    async def test_login(self, db):
        canteen = await create_canteen("Main", "Campus", "main-op", "pw-123")

        assert await login_canteen("main-op", "pw-123") == (canteen.id, "Main")
        assert await login_canteen("main-op", "pw-124") is None
        assert await login_canteen("nobody", "pw-123") is None

    def test_unrecognised_hash_never_verifies(self):
        assert verify_password("pw", "plaintext-in-db") is False
