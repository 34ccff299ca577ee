from unittest.mock import patch

import httpx
import pytest

from canteen.auth.jwks import JwksCache
from canteen.auth.qr_token import generate_qr_token
from canteen.core import config
from canteen.models.canteen import MenuItem
from canteen.models.hold import Hold
from canteen.models.user import User
from canteen.services.canteen_service import create_canteen
from tests.conftest import JWKS_URL, admin_headers, make_canteen, make_item, user_headers


class TestUserAuthentication:

    @pytest.mark.asyncio
    async def test_first_request_creates_user_and_renewal_keeps_id(self, client, rsa_keys):
        response = await client.get("/users/get_past_orders", headers=user_headers(rsa_keys[0], sub="uid-a"))
        assert response.status_code == 200
        assert response.json() == {**response.json(), "status": "ok", "data": []}
        user = await User.get(external_id="uid-a")

        # A renewed token with a new display name maps to the same row
        await client.get("/users/get_past_orders", headers=user_headers(rsa_keys[0], sub="uid-a", name="Renamed"))

        assert await User.filter(external_id="uid-a").count() == 1
        renewed = await User.get(external_id="uid-a")
        assert renewed.id == user.id
        assert renewed.display_name == "Renamed"

    @pytest.mark.asyncio
    async def test_token_with_unverified_email_is_401(self, client, rsa_keys):
        response = await client.get("/users/get_past_orders",
                                    headers=user_headers(rsa_keys[0], email_verified=False))
        assert response.status_code == 401
        assert await User.all().count() == 0

    @pytest.mark.asyncio
    async def test_jwks_without_key_list_is_401(self, client, auth_app, rsa_keys):
        auth_app.state.jwks = JwksCache(
            JWKS_URL, transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"keys": None}))
        )

        response = await client.get("/users/get_past_orders", headers=user_headers(rsa_keys[0]))

        assert response.status_code == 401
        assert response.json()["status"] == "error"


class TestOrderLifecycle:

    @pytest.mark.asyncio
    async def test_hold_confirm_and_deliver(self, client, rsa_keys, admin_cfg):
        canteen = await make_canteen()
        item = await make_item(canteen, price=120, stock=2)
        user_auth = user_headers(rsa_keys[0])

        response = await client.post("/orders/hold", headers=user_auth,
                                     json={"deliver_at": "11:00am - 12:00pm", "item_ids": [item.id, item.id]})
        assert response.status_code == 200
        hold_id = response.json()["hold_id"]
        stocked = await MenuItem.get(id=item.id)
        assert (stocked.stock, stocked.is_available) == (0, False)

        response = await client.post(f"/orders/hold/{hold_id}/confirm", headers=user_auth)
        assert response.status_code == 200
        order_id = response.json()["order_id"]

        admin_auth = admin_headers(canteen.id, admin_cfg)
        response = await client.get("/orders", headers=admin_auth)
        assert response.json()["data"]["11:00am - 12:00pm"] == [
            {"item_id": item.id, "item_name": item.name, "num_ordered": 2}
        ]

        qr = await client.get(f"/orders/{order_id}/qr", headers=user_auth)
        assert qr.status_code == 200
        assert qr.headers["content-type"] == "image/png"

        user = await User.get(external_id="firebase-uid-1")
        token = generate_qr_token(order_id, user.id, config.DELIVER_QR_HASH_SECRET)
        scan = await client.post("/orders/scan", headers=admin_auth, json={"token": token})
        assert scan.status_code == 200
        assert scan.json()["data"]["total_price"] == 240

        assert (await client.put(f"/orders/{order_id}/delivered", headers=admin_auth)).status_code == 200

        rescan = await client.post("/orders/scan", headers=admin_auth, json={"token": token})
        assert rescan.status_code == 400
        assert rescan.json()["error"] == "Order not found or already completed"

        past = (await client.get("/users/get_past_orders", headers=user_auth)).json()["data"]
        assert [(p["order_id"], p["order_status"]) for p in past] == [(order_id, True)]

    @pytest.mark.asyncio
    async def test_cross_canteen_cart_is_409_and_stock_untouched(self, client, rsa_keys):
        first = await make_canteen("North Canteen")
        second = await make_canteen("South Canteen")
        a1 = await make_item(first, name="Dosa", stock=3)
        a2 = await make_item(second, name="Idli", stock=3)

        response = await client.post("/orders/hold", headers=user_headers(rsa_keys[0]),
                                     json={"item_ids": [a1.id, a2.id]})

        assert response.status_code == 409
        assert response.json()["status"] == "error"
        assert (await MenuItem.get(id=a1.id)).stock == 3
        assert (await MenuItem.get(id=a2.id)).stock == 3
        assert await Hold.all().count() == 0

    @pytest.mark.asyncio
    async def test_scan_from_other_canteen_is_403(self, client, rsa_keys, admin_cfg):
        canteen = await make_canteen("North Canteen")
        other = await make_canteen("South Canteen")
        item = await make_item(canteen)
        user_auth = user_headers(rsa_keys[0])
        hold_id = (await client.post("/orders/hold", headers=user_auth, json={"item_ids": [item.id]})).json()["hold_id"]
        order_id = (await client.post(f"/orders/hold/{hold_id}/confirm", headers=user_auth)).json()["order_id"]
        user = await User.get(external_id="firebase-uid-1")

        token = generate_qr_token(order_id, user.id, config.DELIVER_QR_HASH_SECRET)
        response = await client.post("/orders/scan", headers=admin_headers(other.id, admin_cfg), json={"token": token})

        assert response.status_code == 403
        assert "QR is valid but does not belong to this shop's order" in response.text

    @pytest.mark.asyncio
    async def test_cancelled_order_shows_in_past_orders(self, client, rsa_keys, admin_cfg):
        canteen = await make_canteen()
        item = await make_item(canteen, stock=5)
        user_auth = user_headers(rsa_keys[0])
        hold_id = (await client.post("/orders/hold", headers=user_auth, json={"item_ids": [item.id]})).json()["hold_id"]
        order_id = (await client.post(f"/orders/hold/{hold_id}/confirm", headers=user_auth)).json()["order_id"]

        response = await client.put(f"/orders/{order_id}/cancelled", headers=admin_headers(canteen.id, admin_cfg))
        assert response.status_code == 200

        past = (await client.get("/users/get_past_orders", headers=user_auth)).json()["data"]
        assert len(past) == 1
        assert past[0]["order_status"] is False
        assert (await client.get(f"/orders/{order_id}", headers=admin_headers(canteen.id, admin_cfg))).json()["data"] is None

    @pytest.mark.asyncio
    async def test_release_by_another_user_is_409(self, client, rsa_keys):
        canteen = await make_canteen()
        item = await make_item(canteen, stock=5)
        hold_id = (await client.post("/orders/hold", headers=user_headers(rsa_keys[0], sub="owner"),
                                     json={"item_ids": [item.id]})).json()["hold_id"]

        response = await client.delete(f"/orders/hold/{hold_id}", headers=user_headers(rsa_keys[0], sub="intruder"))

        assert response.status_code == 409
        assert response.json()["error"] == "You do not own this hold"
        assert (await MenuItem.get(id=item.id)).stock == 4

    @pytest.mark.asyncio
    async def test_active_orders_by_user(self, client, rsa_keys, admin_cfg):
        canteen = await make_canteen()
        item = await make_item(canteen, price=60)
        user_auth = user_headers(rsa_keys[0])
        hold_id = (await client.post("/orders/hold", headers=user_auth, json={"item_ids": [item.id]})).json()["hold_id"]
        order_id = (await client.post(f"/orders/hold/{hold_id}/confirm", headers=user_auth)).json()["order_id"]
        user = await User.get(external_id="firebase-uid-1")
        await User.filter(id=user.id).update(rfid="CARD-42")

        own = await client.get("/orders/by_user", headers=user_auth)
        assert own.status_code == 200
        assert [(o["order_id"], o["total_price"]) for o in own.json()["data"]] == [(order_id, 60)]

        admin_auth = admin_headers(canteen.id, admin_cfg)
        by_card = await client.get("/orders/by_user", params={"rfid": "CARD-42"}, headers=admin_auth)
        assert [o["order_id"] for o in by_card.json()["data"]] == [order_id]
        assert (await client.get("/orders/by_user", headers=admin_auth)).status_code == 400

        await client.put(f"/orders/{order_id}/delivered", headers=admin_auth)
        after = await client.get("/orders/by_user", params={"user_id": user.id}, headers=admin_auth)
        assert after.json()["data"] == []


class TestCanteenLogin:

    @pytest.mark.asyncio
    async def test_login_issues_working_operator_token(self, client):
        canteen = await create_canteen("Main Canteen", "Campus", "main-op", "correct horse")

        bad = await client.post("/canteen/login", json={"username": "main-op", "password": "wrong"})
        assert bad.status_code == 401
        assert bad.json()["error"] == "Invalid username or password"

        good = await client.post("/canteen/login", json={"username": "main-op", "password": "correct horse"})
        assert good.status_code == 200
        token = good.json()["token"]
        assert good.json()["data"] == {"canteen_id": canteen.id, "canteen_name": "Main Canteen"}

        response = await client.get("/orders", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json()["data"] == {}

    @pytest.mark.asyncio
    async def test_unknown_user(self, client):
        response = await client.post("/canteen/login", json={"username": "ghost", "password": "pw"})
        assert response.status_code == 401


class TestQrSecretRotation:

    @pytest.mark.asyncio
    async def test_qr_secret_is_read_at_request_time(self, client, rsa_keys, admin_cfg):
        canteen = await make_canteen()
        item = await make_item(canteen)
        user_auth = user_headers(rsa_keys[0])
        hold_id = (await client.post("/orders/hold", headers=user_auth, json={"item_ids": [item.id]})).json()["hold_id"]
        order_id = (await client.post(f"/orders/hold/{hold_id}/confirm", headers=user_auth)).json()["order_id"]
        user = await User.get(external_id="firebase-uid-1")
        token = generate_qr_token(order_id, user.id, "rotated-secret")

        with patch.object(config, "DELIVER_QR_HASH_SECRET", "rotated-secret"):
            response = await client.post("/orders/scan", headers=admin_headers(canteen.id, admin_cfg),
                                         json={"token": token})

        assert response.status_code == 200
