from __future__ import annotations

import os
import tempfile
import unittest

from taskmaxxing import db
from taskmaxxing.app import app

PASSWORD = "Secret123"


class AppTestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        app.config.update(
            TESTING=True,
            APP_ENV="development",
            DATABASE_URL="",
            DATABASE_PATH=os.path.join(self._tmp.name, "test.db"),
            RESEND_API_KEY="",
            RESET_EMAIL_FROM="",
        )
        db.reset_ready_state()
        self.app = app
        self.client = app.test_client()

    def tearDown(self):
        db.reset_ready_state()
        self._tmp.cleanup()

    def register(self, email="ada@example.com", name="Ada", password=PASSWORD, client=None):
        client = client or self.client
        return client.post(
            "/api/auth/register",
            json={"email": email, "password": password, "name": name},
        )

    def login(self, email="ada@example.com", password=PASSWORD, remember_me=None, client=None):
        client = client or self.client
        body = {"email": email, "password": password}
        if remember_me is not None:
            body["rememberMe"] = remember_me
        return client.post("/api/auth/login", json=body)

    def sign_up(self, email="ada@example.com", name="Ada", client=None):
        self.register(email=email, name=name, client=client)
        resp = self.login(email=email, client=client)
        self.assertEqual(resp.status_code, 200)
        return resp.get_json()["user"]
