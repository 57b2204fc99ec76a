"""Application tests for order placement — matching gates, settlement and side effects."""

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError
from support import BEYOND_SERVICE_POINT, menu, place_order, register_customer, register_vendor

from marketplace.access import Actor
from marketplace.errors import CapacityExceeded, CodConfirmationRequired, OutOfServiceArea, VendorInactive
from marketplace.notification.record import NotificationRecord
from marketplace.order.lifecycle import OrderLifecycle
from marketplace.order.order import Order
from marketplace.order.placement import OrderPlacement
from marketplace.vendor.vendor import Vendor


class TestInZonePlacement:
    def test_order_persisted_in_placed(self, vendor, customer):
        order = place_order(vendor, customer)

        stored = current_domain.repository_for(Order).get(order.id)
        assert stored.status == "PLACED"
        assert stored.subtotal == 500_000
        assert stored.delivery_fee == 0
        assert stored.total == 500_000
        assert stored.delivery_type == "IN_ZONE_INTERNAL"
        assert stored.delivery_provider == "IN_HOUSE"
        assert len(stored.status_history()) == 1

    def test_online_payment_is_prepaid(self, vendor, customer):
        order = place_order(vendor, customer)
        assert order.settlement_type == "PREPAID"
        assert order.payment_status == "PENDING"
        assert order.is_cod is False

    def test_cash_choice_is_postpaid(self, vendor, customer):
        order = place_order(vendor, customer, pay_online=False)
        assert order.settlement_type == "POSTPAID"
        assert order.payment_status == "NONE"
        assert order.is_cod is True

    def test_prices_come_from_menu(self, vendor, customer):
        order = place_order(vendor, customer, quantities={"Koobideh": 1, "Joojeh": 2})
        assert order.subtotal == 250_000 + 2 * 300_000
        assert sorted(item.title for item in order.items) == ["Joojeh", "Koobideh"]

    def test_customer_note_kept(self, vendor, customer):
        order = place_order(vendor, customer, customer_note="No onions")
        assert order.customer_note == "No onions"


class TestOutOfZonePlacement:
    def test_requires_cod_confirmation(self, vendor, far_customer):
        with pytest.raises(CodConfirmationRequired):
            place_order(vendor, far_customer)
        assert current_domain.repository_for(Order).find_for_customer(str(far_customer.id)) == []

    def test_confirmed_courier_order_is_cash_on_delivery(self, vendor, far_customer):
        order = place_order(vendor, far_customer, cod_confirmed=True)

        assert order.delivery_type == "OUT_OF_ZONE_COURIER"
        assert order.delivery_provider == "COURIER"
        assert order.settlement_type == "POSTPAID"
        assert order.payment_status == "NONE"
        # ~5.56 km at 50,000 + 10,000/km
        assert 105_000 < order.delivery_fee < 106_000
        assert order.delivery_pricing.computed_fee == order.delivery_fee
        assert order.total == 500_000 + order.delivery_fee

    def test_beyond_courier_range_rejected(self, vendor):
        customer = register_customer(mobile="09120000003", point=BEYOND_SERVICE_POINT)
        with pytest.raises(OutOfServiceArea):
            place_order(vendor, customer, cod_confirmed=True)


class TestPlacementRejections:
    def test_inactive_vendor(self, customer):
        vendor = register_vendor()
        vendor.deactivate()
        current_domain.repository_for(Vendor).add(vendor)

        with pytest.raises(VendorInactive):
            place_order(vendor, customer)

    def test_daily_capacity(self, customer):
        vendor = register_vendor(max_daily_orders=2)
        place_order(vendor, customer)
        place_order(vendor, customer)

        with pytest.raises(CapacityExceeded):
            place_order(vendor, customer)

    @pytest.mark.slow
    def test_capacity_counts_past_a_single_page(self, customer):
        vendor = register_vendor(max_daily_orders=105)
        for _ in range(105):
            place_order(vendor, customer)

        with pytest.raises(CapacityExceeded):
            place_order(vendor, customer)

        orders = current_domain.repository_for(Order).find_for_vendor(vendor.id)
        assert len(orders) == 105

    def test_cancelled_orders_free_capacity(self, customer):
        vendor = register_vendor(max_daily_orders=1)
        first = place_order(vendor, customer)
        OrderLifecycle().transition(first.id, "CANCELLED", actor=Actor.customer(customer.id))

        assert place_order(vendor, customer).status == "PLACED"

    def test_missing_default_address(self, vendor):
        customer = register_customer(mobile="09120000004", with_address=False)
        with pytest.raises(ValidationError) as exc_info:
            place_order(vendor, customer)
        assert "address" in exc_info.value.messages

    def test_unknown_customer(self, vendor):
        with pytest.raises(ObjectNotFoundError):
            OrderPlacement().place(
                customer_id="missing",
                vendor_id=str(vendor.id),
                items=[{"variant_id": menu(vendor)["Koobideh"], "quantity": 1}],
            )

    def test_empty_cart(self, vendor, customer):
        with pytest.raises(ValidationError):
            OrderPlacement().place(customer_id=str(customer.id), vendor_id=str(vendor.id), items=[])

    def test_non_positive_quantity(self, vendor, customer):
        with pytest.raises(ValidationError):
            place_order(vendor, customer, quantities={"Koobideh": 0})

    def test_variant_from_another_vendor(self, vendor, customer):
        other = register_vendor(name="Pizza Place", telegram_chat_id="vendor-chat-2")
        with pytest.raises(ValidationError):
            OrderPlacement().place(
                customer_id=str(customer.id),
                vendor_id=str(vendor.id),
                items=[{"variant_id": menu(other)["Koobideh"], "quantity": 1}],
            )


class TestPlacementSideEffects:
    def test_notifications_recorded_and_queued(self, vendor, customer, queue):
        order = place_order(vendor, customer)

        records = current_domain.repository_for(NotificationRecord).find_for_order(order.id)
        events = sorted(record.event_name for record in records)
        # Customer on chat and SMS, vendor on chat; no admin chat configured
        assert events == ["order_placed", "order_placed", "vendor_new_order"]
        assert all(record.status == "PENDING" for record in records)
        assert queue.counts()["waiting"] == 3

    def test_vendor_message_carries_action_buttons(self, vendor, customer, queue):
        place_order(vendor, customer)

        jobs = []
        job = queue.dequeue()
        while job is not None:
            jobs.append(job)
            job = queue.dequeue()
        vendor_job = next(job for job in jobs if getattr(job, "target", None) == "vendor")
        assert vendor_job.recipient == "vendor-chat-1"
        assert vendor_job.reply_markup is not None

    def test_audit_event(self, vendor, customer, audit_log):
        order = place_order(vendor, customer)

        created = audit_log.named("order_created")
        assert len(created) == 1
        assert created[0]["order_id"] == str(order.id)
        assert created[0]["total"] == 500_000

    def test_notification_failure_does_not_fail_placement(self, vendor, customer, queue, chat):
        queue.available = False
        chat.configure(should_succeed=False)

        order = place_order(vendor, customer)
        assert current_domain.repository_for(Order).get(order.id).status == "PLACED"
