"""
Tests for PinnedUserCache: toggling, resolution of cached vs missing logins,
staleness and tolerance of a pin list without cached snapshot.
"""

from __future__ import annotations

import unittest

from custom_components.intra_logtime.const import STORE_KEY_PINNED_CACHE, STORE_KEY_PINNED_LOGINS
from custom_components.intra_logtime.pins import PinnedUserCache

from .test_common import make_store, make_user


class TestPinnedUserCache(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.store, self.backend = make_store()
        self.pins = PinnedUserCache(self.store)

    async def test_nothing_pinned_initially(self):
        self.assertEqual(await self.pins.pinned_logins(), [])
        self.assertFalse(await self.pins.is_pinned("jdoe"))

    async def test_toggle_pins_and_caches(self):
        user = make_user("jdoe")
        pinned = await self.pins.toggle_pin(user)
        self.assertTrue(pinned)
        self.assertTrue(await self.pins.is_pinned("jdoe"))
        self.assertEqual((await self.pins.cached_users())["jdoe"], user)

    async def test_toggle_twice_restores_original_state(self):
        await self.pins.toggle_pin(make_user("alice", 2))
        before = await self.pins.pinned_logins()

        user = make_user("jdoe")
        await self.pins.toggle_pin(user)
        pinned = await self.pins.toggle_pin(user)

        self.assertFalse(pinned)
        self.assertEqual(await self.pins.pinned_logins(), before)
        self.assertNotIn("jdoe", await self.pins.cached_users())

    async def test_pin_order_is_insertion_order(self):
        for index, login in enumerate(["c", "a", "b"]):
            await self.pins.toggle_pin(make_user(login, index))
        self.assertEqual(await self.pins.pinned_logins(), ["c", "a", "b"])

    async def test_list_is_written_before_cache(self):
        await self.pins.toggle_pin(make_user("jdoe"))
        # one save for the list, one for the cache entry
        self.assertEqual(self.backend.save_count, 2)
        self.assertIn(STORE_KEY_PINNED_LOGINS, self.backend.saved)
        self.assertIn(STORE_KEY_PINNED_CACHE, self.backend.saved)

    async def test_resolve_splits_cached_and_missing(self):
        user_a = make_user("a", 1)
        await self.pins.cache_user(user_a)
        resolution = await self.pins.resolve(["a", "b"])
        self.assertEqual(resolution.cached, [user_a])
        self.assertEqual(resolution.missing, ["b"])

    async def test_pinned_login_without_snapshot_is_missing(self):
        await self.store.async_set(STORE_KEY_PINNED_LOGINS, ["ghost"])
        resolution = await self.pins.resolve(await self.pins.pinned_logins())
        self.assertEqual(resolution.missing, ["ghost"])

    async def test_remove_cached_user(self):
        await self.pins.cache_user(make_user("a"))
        await self.pins.remove_cached_user("a")
        self.assertEqual(await self.pins.cached_users(), {})

    async def test_cache_user_overwrites_snapshot(self):
        await self.pins.cache_user(make_user("a", location="c1r1s1"))
        await self.pins.cache_user(make_user("a", location=None))
        self.assertIsNone((await self.pins.cached_users())["a"].location)

    async def test_stale_logins(self):
        await self.pins.toggle_pin(make_user("old", 1, fetched_at=1000.0))
        await self.pins.toggle_pin(make_user("new", 2, fetched_at=4500.0))
        self.assertEqual(await self.pins.stale_logins(3600, now=5000.0), ["old"])

    async def test_unreadable_cache_entries_are_ignored(self):
        await self.store.async_set(STORE_KEY_PINNED_CACHE, {"a": "broken", "b": make_user("b").to_dict()})
        self.assertEqual(list(await self.pins.cached_users()), ["b"])
