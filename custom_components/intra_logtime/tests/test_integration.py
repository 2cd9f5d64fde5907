"""
Real API integration tests for IntraLogtimeCoordinator.
Requires INTRA_CLIENT_ID, INTRA_CLIENT_SECRET and INTRA_LOGIN environment variables to run.
Skip with:  pytest -k "not Integration"
"""

from __future__ import annotations

import asyncio
import os
import unittest
from unittest.mock import MagicMock

from dotenv import load_dotenv

from custom_components.intra_logtime.coordinator import IntraLogtimeCoordinator
from custom_components.intra_logtime.coordinator_data import CoordinatorData

from .test_common import make_entry_data, make_store


class TestCoordinatorIntegration(unittest.IsolatedAsyncioTestCase):
    """
    Integration tests that hit the real 42 Intra API.
    Skipped automatically when the credentials are not set.
    """

    def setUp(self):
        load_dotenv()
        client_id = os.getenv("INTRA_CLIENT_ID")
        client_secret = os.getenv("INTRA_CLIENT_SECRET")
        login = os.getenv("INTRA_LOGIN")
        if not client_id or not client_secret or not login:
            self.skipTest("INTRA_CLIENT_ID / INTRA_CLIENT_SECRET / INTRA_LOGIN not set, skipping integration tests")

        self._entry_data = make_entry_data(client_id=client_id, client_secret=client_secret, user_login=login)

    def _make_real_coordinator(self) -> IntraLogtimeCoordinator:
        hass = MagicMock()
        hass.async_create_task = lambda coro: asyncio.ensure_future(coro)
        store, _ = make_store()
        return IntraLogtimeCoordinator(hass, self._entry_data, store=store)

    async def test_authenticate(self):
        coord = self._make_real_coordinator()
        token = await coord.credentials.authenticate()
        self.assertTrue(token)
        self.assertTrue(coord.credentials.is_authenticated)

    async def test_fetch_user(self):
        coord = self._make_real_coordinator()
        user = await coord.api.fetch_user(coord.user_login)
        self.assertEqual(user.login, coord.user_login)

    async def test_update_data(self):
        coord = self._make_real_coordinator()
        data = await coord._async_update_data()
        self.assertIsInstance(data, CoordinatorData)
        self.assertIsNotNone(data.goal_info)
        self.assertGreaterEqual(data.today_logtime_seconds, 0)

    async def test_fetch_history(self):
        coord = self._make_real_coordinator()
        history = await coord.async_fetch_history(coord.user_login, 7)
        self.assertEqual(history.sorted_dates, sorted(history.stats, reverse=True))

    async def test_search_users(self):
        coord = self._make_real_coordinator()
        found = await coord.async_search_users(coord.user_login[:3], limit=5)
        self.assertLessEqual(len(found), 5)
        for user in found:
            self.assertTrue(user.login.startswith(coord.user_login[:3]))
