"""Integration tests for vendor and customer onboarding endpoints."""

from protean import current_domain
from support import IN_ZONE_POINT, VENDOR_POINT, actor_headers

from marketplace.customer.customer import Customer
from marketplace.vendor.vendor import Vendor

ADMIN = actor_headers("admin", "admin-1")


def _register_vendor(client, **overrides):
    body = {
        "name": "Ash Reshteh Corner",
        "lat": VENDOR_POINT[0],
        "lng": VENDOR_POINT[1],
        "service_radius_km": 3.0,
        "max_daily_orders": 20,
        "telegram_chat_id": "vendor-chat-77",
        **overrides,
    }
    return client.post("/vendors", json=body, headers=ADMIN)


def _register_customer(client):
    return client.post("/customers", json={"mobile": "09121111111", "name": "Reza", "telegram_chat_id": "cust-77"})


class TestVendorOnboarding:
    def test_register_vendor(self, client):
        response = _register_vendor(client)

        assert response.status_code == 201
        vendor = current_domain.repository_for(Vendor).get(response.json()["vendor_id"])
        assert vendor.name == "Ash Reshteh Corner"
        assert vendor.is_active is True

    def test_only_admins_register_vendors(self, client):
        response = client.post(
            "/vendors",
            json={"name": "X", "lat": 35.7, "lng": 51.4, "service_radius_km": 1},
            headers=actor_headers("vendor", "v-1"),
        )
        assert response.status_code == 403

    def test_invalid_coordinates(self, client):
        assert _register_vendor(client, lat=120).status_code == 422

    def test_vendor_adds_own_menu_item(self, client):
        vendor_id = _register_vendor(client).json()["vendor_id"]

        response = client.post(
            f"/vendors/{vendor_id}/menu",
            json={"title": "Ash", "price": 180_000, "code": "ASH-1"},
            headers=actor_headers("vendor", vendor_id),
        )

        assert response.status_code == 201
        vendor = current_domain.repository_for(Vendor).get(vendor_id)
        assert [item.title for item in vendor.menu] == ["Ash"]

    def test_vendor_cannot_edit_another_menu(self, client):
        vendor_id = _register_vendor(client).json()["vendor_id"]
        response = client.post(
            f"/vendors/{vendor_id}/menu", json={"title": "Ash", "price": 1}, headers=actor_headers("vendor", "other")
        )
        assert response.status_code == 403

    def test_deactivate_vendor(self, client):
        vendor_id = _register_vendor(client).json()["vendor_id"]

        response = client.put(f"/vendors/{vendor_id}/active", json={"is_active": False}, headers=ADMIN)

        assert response.status_code == 200
        assert current_domain.repository_for(Vendor).get(vendor_id).is_active is False


class TestCustomerOnboarding:
    def test_register_customer(self, client):
        response = _register_customer(client)

        assert response.status_code == 201
        customer = current_domain.repository_for(Customer).get(response.json()["customer_id"])
        assert customer.mobile == "09121111111"

    def test_first_address_becomes_default(self, client):
        customer_id = _register_customer(client).json()["customer_id"]

        response = client.post(
            f"/customers/{customer_id}/addresses",
            json={"title": "Work", "lat": IN_ZONE_POINT[0], "lng": IN_ZONE_POINT[1]},
            headers=actor_headers("customer", customer_id),
        )

        assert response.status_code == 201
        customer = current_domain.repository_for(Customer).get(customer_id)
        assert customer.default_address.title == "Work"

    def test_customer_cannot_edit_someone_elses_addresses(self, client):
        customer_id = _register_customer(client).json()["customer_id"]
        response = client.post(
            f"/customers/{customer_id}/addresses",
            json={"title": "Work", "lat": 35.7, "lng": 51.4},
            headers=actor_headers("customer", "other"),
        )
        assert response.status_code == 403


class TestOnboardedVendorTakesOrders:
    def test_inactive_vendor_rejects_orders(self, client):
        vendor_id = _register_vendor(client).json()["vendor_id"]
        variant_id = client.post(
            f"/vendors/{vendor_id}/menu", json={"title": "Ash", "price": 180_000}, headers=ADMIN
        ).json()["variant_id"]
        customer_id = _register_customer(client).json()["customer_id"]
        client.post(
            f"/customers/{customer_id}/addresses",
            json={"title": "Home", "lat": IN_ZONE_POINT[0], "lng": IN_ZONE_POINT[1]},
            headers=actor_headers("customer", customer_id),
        )
        client.put(f"/vendors/{vendor_id}/active", json={"is_active": False}, headers=ADMIN)

        response = client.post(
            "/orders",
            json={"vendor_id": vendor_id, "items": [{"variant_id": variant_id, "quantity": 1}]},
            headers=actor_headers("customer", customer_id),
        )

        assert response.status_code == 422
        assert response.json()["kind"] == "vendor_inactive"
