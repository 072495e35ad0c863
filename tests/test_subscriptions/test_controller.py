"""
Tests for the AppController.

These tests verify that user actions update the application state only
through the controller, and that every failure becomes a notice instead
of an exception.
"""

import asyncio
import json
import logging

import pytest

from gateway.catalog_proxy import CatalogProxy
from shared.data_store import MemoryStorage
from shared.subscription_store import SUBSCRIPTIONS_KEY, PersistentSubscriptionStore
from subscriptions.controller import AppController
from subscriptions.state import NoticeLevel


class TestStartup:
    """Tests for loading state at startup."""

    @pytest.mark.asyncio
    async def test_startup_loads_catalogs_and_subscriptions(self, controller: AppController, all_catalog, available_catalog):
        await controller.startup()

        state = controller.state
        assert list(state.all_products) == list(all_catalog)
        assert list(state.available_products) == list(available_catalog)
        assert state.subscriptions == {}
        assert state.loading is False
        assert state.notices == []

    @pytest.mark.asyncio
    async def test_startup_prefills_last_email(self, memory_storage: MemoryStorage, catalog_proxy, gateway):
        PersistentSubscriptionStore(memory_storage).add("X", "a@x.com")
        controller = AppController(PersistentSubscriptionStore(memory_storage), catalog_proxy, gateway)

        await controller.startup()

        assert controller.state.email == "a@x.com"
        assert list(controller.state.subscriptions) == ["X"]

    @pytest.mark.asyncio
    async def test_corrupt_storage_becomes_notice(self, memory_storage: MemoryStorage, catalog_proxy, gateway):
        memory_storage.set(SUBSCRIPTIONS_KEY, "{broken")
        controller = AppController(PersistentSubscriptionStore(memory_storage), catalog_proxy, gateway)

        await controller.startup()

        notice = controller.state.notices[0]
        assert notice.level == NoticeLevel.ERROR
        assert notice.title == "Storage Error"
        assert controller.state.subscriptions == {}
        assert controller.state.all_products

    @pytest.mark.asyncio
    async def test_one_failed_catalog_does_not_block_the_other(self, controller: AppController, transport, available_catalog):
        transport.fail("GET", "/all")

        await controller.refresh_catalogs()

        assert controller.state.all_products == {}
        assert list(controller.state.available_products) == list(available_catalog)
        assert [n.message for n in controller.state.notices] == ["Failed to fetch products"]

    @pytest.mark.asyncio
    async def test_catalogs_fetched_concurrently(self, subscription_store, gateway):
        """Test that the two fetches overlap instead of running back to back."""
        in_flight = []
        peak = []

        class _Proxy:
            async def _fetch(self, data):
                in_flight.append(1)
                peak.append(len(in_flight))
                await asyncio.sleep(0.01)
                in_flight.pop()
                return data

            async def fetch_all(self):
                return await self._fetch({"A": {"available": 0, "price": 1}})

            async def fetch_available(self):
                return await self._fetch({})

        controller = AppController(subscription_store, _Proxy(), gateway)
        await controller.refresh_catalogs()

        assert max(peak) == 2

    @pytest.mark.asyncio
    async def test_available_missing_from_all_is_logged(self, controller: AppController, transport, caplog):
        transport.respond("GET", "/available", body={"Ghost": {"available": 1, "price": 5, "images": []}})

        with caplog.at_level(logging.WARNING, logger="controller"):
            await controller.refresh_catalogs()

        assert controller.check_catalog_consistency() == ["Ghost"]
        assert "Ghost" in caplog.text
        assert "Ghost" in controller.state.available_products

    @pytest.mark.asyncio
    async def test_invalid_catalog_entries_become_notice(self, controller: AppController, transport):
        transport.respond("GET", "/all", body={"Broken": {"price": "n/a"}})

        await controller.refresh_catalogs()

        assert controller.state.all_products == {}
        assert controller.state.notices[-1].is_error


class TestSubscribe:
    """Tests for subscribing through the controller."""

    @pytest.mark.asyncio
    async def test_subscribe_success(self, controller: AppController, milk_product_name):
        record = await controller.subscribe(milk_product_name, "a@x.com")

        assert record is not None
        assert controller.state.email == "a@x.com"
        assert milk_product_name in controller.state.subscriptions
        assert controller.view.is_subscribed(milk_product_name)
        notice = controller.state.last_notice
        assert notice.title == "Subscribed!"
        assert milk_product_name in notice.message

    @pytest.mark.asyncio
    async def test_subscribe_uses_current_email(self, controller: AppController, milk_product_name, transport):
        controller.state.email = "saved@x.com"

        await controller.subscribe(milk_product_name)

        assert transport.posts_to("/notify")[0]["email"] == "saved@x.com"

    @pytest.mark.asyncio
    async def test_missing_email_notice(self, controller: AppController, milk_product_name, transport):
        result = await controller.subscribe(milk_product_name)

        assert result is None
        assert controller.state.last_notice.title == "Email Required"
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_rejection_notice_shows_upstream_body(self, controller: AppController, milk_product_name, transport):
        transport.respond("POST", "/notify", status=400, body="already subscribed")

        result = await controller.subscribe(milk_product_name, "a@x.com")

        assert result is None
        assert controller.state.subscriptions == {}
        notice = controller.state.last_notice
        assert notice.title == "Subscription Failed"
        assert notice.message == "already subscribed"

    @pytest.mark.asyncio
    async def test_transport_failure_notice(self, controller: AppController, milk_product_name, transport):
        transport.fail("POST", "/notify")

        assert await controller.subscribe(milk_product_name, "a@x.com") is None
        assert controller.state.subscriptions == {}
        assert controller.state.last_notice.message == "Failed to subscribe to notifications"


class TestUnsubscribe:
    """Tests for unsubscribing through the controller."""

    @pytest.mark.asyncio
    async def test_unsubscribe_success(self, controller: AppController, milk_product_name):
        await controller.subscribe(milk_product_name, "a@x.com")

        assert await controller.unsubscribe(milk_product_name) is True
        assert controller.state.subscriptions == {}
        assert controller.state.last_notice.title == "Unsubscribed"

    @pytest.mark.asyncio
    async def test_unsubscribe_failure_keeps_subscription(self, controller: AppController, milk_product_name, transport):
        await controller.subscribe(milk_product_name, "a@x.com")
        transport.fail("POST", "/notify/remove")

        assert await controller.unsubscribe(milk_product_name) is False
        assert milk_product_name in controller.state.subscriptions
        assert controller.state.last_notice.message == "Failed to unsubscribe from notifications"

    @pytest.mark.asyncio
    async def test_unsubscribe_rejection_notice(self, controller: AppController, milk_product_name, transport):
        await controller.subscribe(milk_product_name, "a@x.com")
        transport.respond("POST", "/notify/remove", status=404, body="not found")

        assert await controller.unsubscribe(milk_product_name) is False
        assert controller.state.last_notice.title == "Unsubscribe Failed"
        assert controller.state.last_notice.message == "not found"


class TestLocalActions:
    """Tests for clear, forget and unsubscribe-all."""

    @pytest.mark.asyncio
    async def test_clear_all(self, controller: AppController, memory_storage: MemoryStorage):
        """Store with A and B, cleared: empty store and no cached email."""
        await controller.subscribe("A", "a@x.com")
        await controller.subscribe("B", "a@x.com")

        assert controller.clear_all() is True

        assert controller.state.subscriptions == {}
        assert memory_storage.get("userEmail") is None
        assert json.loads(memory_storage.get(SUBSCRIPTIONS_KEY)) == {}
        assert controller.state.last_notice.title == "Cleared"

    @pytest.mark.asyncio
    async def test_forget(self, controller: AppController, transport):
        await controller.subscribe("A", "a@x.com")

        assert await controller.forget("A") is True
        assert controller.state.subscriptions == {}
        assert controller.state.last_notice.title == "Removed"
        assert transport.posts_to("/notify/remove") == []

    @pytest.mark.asyncio
    async def test_unsubscribe_all_reports_failures(self, controller: AppController, transport):
        await controller.subscribe("A", "a@x.com")
        transport.respond("POST", "/notify/remove", status=500, body="down")

        failed = await controller.unsubscribe_all()

        assert failed == ["A"]
        assert list(controller.state.subscriptions) == ["A"]
        assert controller.state.last_notice.is_error


class TestProjection:
    """Tests for search, view selection and listing."""

    @pytest.mark.asyncio
    async def test_search_and_select_view(self, controller: AppController):
        await controller.startup()

        cards = controller.search("PANEER")
        assert [c.name for c in cards] == ["Amul High Protein Paneer"]

        cards = controller.select_view("available")
        assert controller.state.active_view == "available"
        assert [c.name for c in cards] == ["Amul High Protein Paneer"]

    def test_select_unknown_view(self, controller: AppController):
        with pytest.raises(ValueError):
            controller.select_view("everything")

    @pytest.mark.asyncio
    async def test_subscriptions_newest_first(self, controller: AppController):
        await controller.subscribe("A", "a@x.com")
        await asyncio.sleep(0.001)
        await controller.subscribe("B", "b@x.com")

        assert [r.product_name for r in controller.subscriptions_newest_first()] == ["B", "A"]
        assert controller.stats().total_subscriptions == 2

    def test_newest_first_with_mixed_timestamp_offsets(self, memory_storage: MemoryStorage, catalog_proxy, gateway):
        memory_storage.set(SUBSCRIPTIONS_KEY, json.dumps({
            "Old": {"email": "a@x.com", "subscribedAt": "2026-01-01T08:00:00", "productName": "Old"},
            "New": {"email": "a@x.com", "subscribedAt": "2026-01-01T09:00:00Z", "productName": "New"},
        }))
        controller = AppController(PersistentSubscriptionStore(memory_storage), catalog_proxy, gateway)

        controller.load_subscriptions()

        assert controller.state.notices == []
        assert [r.product_name for r in controller.subscriptions_newest_first()] == ["New", "Old"]

    @pytest.mark.asyncio
    async def test_state_survives_restart(self, memory_storage: MemoryStorage, transport):
        """Test that subscriptions made in one session load in the next."""
        first = AppController(PersistentSubscriptionStore(memory_storage), CatalogProxy(transport), _gateway(transport))
        await first.subscribe("A", "a@x.com")

        second = AppController(PersistentSubscriptionStore(memory_storage), CatalogProxy(transport), _gateway(transport))
        second.load_subscriptions()

        assert list(second.state.subscriptions) == ["A"]
        assert second.state.email == "a@x.com"


def _gateway(transport):
    from gateway.notification_gateway import NotificationGateway
    return NotificationGateway(transport)
