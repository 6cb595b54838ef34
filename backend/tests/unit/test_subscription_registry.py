"""
Unit tests for SubscriptionRegistry and Connection.
"""

import pytest

from livechat.core.exceptions import TransientDeliveryFailure
from livechat.interfaces.auth_provider import User
from livechat.models.chat import ChatRole
from livechat.services.connection import Connection
from livechat.services.subscription_registry import SubscriptionRegistry

ADMIN = User(id="carlos-token", display_name="Carlos", is_admin=True)


class TestConnection:
    """Tests for the outbound queue of a connection."""

    def test_admin_identity(self):
        assert Connection(ADMIN).is_admin
        assert Connection(ADMIN).admin_name == "Carlos"
        assert not Connection().is_admin
        assert Connection(User(id="u1")).admin_name is None

    def test_deliver_then_pending(self):
        connection = Connection()
        connection.deliver("a")
        connection.deliver("b")
        assert connection.pending() == ["a", "b"]
        assert connection.pending() == []

    def test_full_queue_is_a_delivery_failure(self):
        connection = Connection(queue_size=1)
        connection.deliver("a")
        with pytest.raises(TransientDeliveryFailure):
            connection.deliver("b")

    def test_closed_connection_rejects_frames(self):
        connection = Connection()
        connection.close()
        connection.close()
        assert connection.closed
        with pytest.raises(TransientDeliveryFailure):
            connection.deliver("a")

    @pytest.mark.asyncio
    async def test_next_frame_returns_none_after_close(self):
        connection = Connection()
        connection.deliver("a")
        connection.close()
        assert await connection.next_frame() == "a"
        assert await connection.next_frame() is None

    @pytest.mark.asyncio
    async def test_close_on_full_queue_still_wakes_writer(self):
        connection = Connection(queue_size=1)
        connection.deliver("a")
        connection.close()
        assert await connection.next_frame() is None


class TestSubscriptionRegistry:
    """Tests for chat subscriptions."""

    def test_subscribe_and_query(self):
        registry = SubscriptionRegistry()
        user, admin = Connection(), Connection(ADMIN)

        assert registry.subscribe(user, "c1", ChatRole.USER) is None
        assert registry.subscribe(admin, "c1", ChatRole.ADMIN) is None

        assert registry.subscribers_of("c1") == {user, admin}
        assert registry.admins_of("c1") == {admin}
        assert registry.subscription_of(user) == ("c1", ChatRole.USER)
        assert registry.has_role("c1", ChatRole.ADMIN)
        assert registry.connection_count() == 2
        assert registry.chat_ids() == {"c1"}

    def test_connection_is_in_at_most_one_chat(self):
        registry = SubscriptionRegistry()
        admin = Connection(ADMIN)
        registry.subscribe(admin, "c1", ChatRole.ADMIN)

        previous = registry.subscribe(admin, "c2", ChatRole.ADMIN)

        assert previous == ("c1", ChatRole.ADMIN)
        assert registry.subscribers_of("c1") == set()
        assert registry.admins_of("c1") == set()
        assert registry.subscribers_of("c2") == {admin}
        assert registry.chat_ids() == {"c2"}

    def test_unsubscribe_keeps_connection_registered(self):
        registry = SubscriptionRegistry()
        user = Connection()
        registry.subscribe(user, "c1", ChatRole.USER)

        assert registry.unsubscribe(user) == ("c1", ChatRole.USER)
        assert registry.unsubscribe(user) is None
        assert registry.subscribers_of("c1") == set()
        assert registry.connection_count() == 1
        assert not user.closed

    def test_on_disconnect_is_idempotent(self):
        registry = SubscriptionRegistry()
        user = Connection()
        registry.subscribe(user, "c1", ChatRole.USER)

        assert registry.on_disconnect(user) == ("c1", ChatRole.USER)
        assert registry.on_disconnect(user) is None
        assert user.closed
        assert registry.connection_count() == 0
        assert registry.subscribers_of("c1") == set()

    def test_returned_sets_are_copies(self):
        registry = SubscriptionRegistry()
        user = Connection()
        registry.subscribe(user, "c1", ChatRole.USER)

        registry.subscribers_of("c1").clear()
        assert registry.subscribers_of("c1") == {user}

    def test_admin_connections_include_unsubscribed_admins(self):
        registry = SubscriptionRegistry()
        idle_admin, user = Connection(ADMIN), Connection()
        registry.register(idle_admin)
        registry.subscribe(user, "c1", ChatRole.USER)

        assert registry.admin_connections() == {idle_admin}

    def test_global_admin_count(self):
        registry = SubscriptionRegistry()
        idle_admin, watching_admin, user = Connection(ADMIN), Connection(ADMIN), Connection()
        assert registry.global_admin_count() == 0

        registry.register(idle_admin)
        registry.subscribe(watching_admin, "c1", ChatRole.ADMIN)
        registry.subscribe(user, "c1", ChatRole.USER)
        assert registry.global_admin_count() == 2

        registry.unsubscribe(watching_admin)
        assert registry.global_admin_count() == 2

        registry.on_disconnect(idle_admin)
        registry.on_disconnect(idle_admin)
        assert registry.global_admin_count() == 1

    def test_close_all(self):
        registry = SubscriptionRegistry()
        connections = [Connection(), Connection(ADMIN)]
        registry.subscribe(connections[0], "c1", ChatRole.USER)
        registry.subscribe(connections[1], "c1", ChatRole.ADMIN)

        registry.close_all()

        assert registry.connection_count() == 0
        assert registry.chat_ids() == set()
        assert all(c.closed for c in connections)
