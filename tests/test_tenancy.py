"""
API key authentication and tenant scoping.
"""
import pytest

from core.errors import InvalidKey, MissingKey
from core.tenancy import authenticate
from models.shop import Shop
from security.tokens import generate_api_key
from services.credentials import CredentialStore


class _CountingStore:
    def __init__(self):
        self.lookups = 0

    def resolve_api_key(self, api_key):
        self.lookups += 1
        raise InvalidKey()


class TestAuthenticate:
    @pytest.mark.parametrize("key", [None, "", "   "])
    def test_missing_key_skips_lookup(self, key):
        store = _CountingStore()
        with pytest.raises(MissingKey):
            authenticate(key, store)
        assert store.lookups == 0

    def test_unknown_key(self, db):
        with pytest.raises(InvalidKey):
            authenticate("not-a-real-key", CredentialStore(db))

    def test_valid_key_resolves_to_owner(self, db, test_shop, active_owner, add_keeper):
        add_keeper(test_shop, "SK25STAF1", "254700000003", role="staff")

        tenant = authenticate(test_shop.api_key, CredentialStore(db))

        assert tenant.shop_id == test_shop.id
        assert tenant.keeper_id == active_owner.id
        assert tenant.keeper_code == "SK25OWNR1"
        assert tenant.keeper_role == "owner"

    def test_shop_without_keepers_is_rejected(self, db, test_shop):
        with pytest.raises(InvalidKey):
            authenticate(test_shop.api_key, CredentialStore(db))

    def test_keys_are_unique_per_shop(self, test_shop, other_tenant):
        shop, _ = other_tenant
        assert shop.api_key != test_shop.api_key


class TestApiKeyHeader:
    def test_missing_header(self, client):
        response = client.get("/api/v1/shops/current")
        assert response.status_code == 401
        assert response.json()["reason"] == "missing_api_key"

    def test_invalid_header(self, client, active_owner):
        response = client.get("/api/v1/shops/current", headers={"X-Api-Key": "bogus"})
        assert response.status_code == 401
        assert response.json()["reason"] == "invalid_api_key"

    def test_valid_header_returns_own_shop(self, client, api_headers, test_shop, other_tenant):
        response = client.get("/api/v1/shops/current", headers=api_headers)
        assert response.status_code == 200
        assert response.json()["id"] == test_shop.id
        assert response.json()["name"] == "Mama Mboga Stores"
        assert "api_key" not in response.json()

    def test_each_key_sees_its_own_shop(self, client, api_headers, other_tenant):
        shop, _ = other_tenant
        response = client.get("/api/v1/shops/current", headers={"X-Api-Key": shop.api_key})
        assert response.json()["name"] == "Duka la Pili"


class TestPlanAndRoleGates:
    def test_expired_plan_blocks_catalog(self, client, db, add_keeper):
        shop = Shop(name="Lapsed Shop", api_key=generate_api_key())
        db.add(shop)
        db.commit()
        add_keeper(shop, "SK25LAPS1", "254700000005", days=-1)
        headers = {"X-Api-Key": shop.api_key}

        response = client.get("/api/v1/products/", headers=headers)
        assert response.status_code == 402
        assert response.json()["reason"] == "subscription_expired"

        # The shop profile stays readable so the keeper can renew
        assert client.get("/api/v1/shops/current", headers=headers).status_code == 200

    def test_owner_can_update_shop(self, client, api_headers):
        response = client.put("/api/v1/shops/current", headers=api_headers, json={"address": "Gikomba Market"})
        assert response.status_code == 200
        assert response.json()["address"] == "Gikomba Market"
        assert response.json()["name"] == "Mama Mboga Stores"

    def test_staff_only_shop_cannot_use_owner_routes(self, client, db, add_keeper):
        shop = Shop(name="Staffed Shop", api_key=generate_api_key())
        db.add(shop)
        db.commit()
        add_keeper(shop, "SK25STAF2", "254700000006", role="staff")
        headers = {"X-Api-Key": shop.api_key}

        response = client.put("/api/v1/shops/current", headers=headers, json={"name": "Renamed"})
        assert response.status_code == 403
        assert response.json()["reason"] == "owner_only"
        assert client.get("/api/v1/shopkeepers/", headers=headers).status_code == 403
