"""Tests for the sync adapter's verb mapping, URLs, bodies and failure handling."""
from __future__ import annotations

import json
import unittest
from unittest.mock import MagicMock

import requests

from gacha_node.errors import SyncError, UnknownIntentError
from gacha_node.infrastructure.http.sync import SyncAdapter
from gacha_node.models.base import Model

from http_fakes import FakeSession, admin_store, make_settings, url


class Machine(Model):
    url = "info"

    def to_post_json(self, options, intent, verb):
        return {"intent": intent, "verb": verb, "name": self.get("name")}


class TestSyncAdapterRequests(unittest.TestCase):
    def _adapter(self, routes, admin_key=None):
        session = FakeSession(routes)
        return SyncAdapter(make_settings(), admin_store(admin_key), session=session), session

    def test_intents_map_to_post_delete_and_get(self):
        adapter, session = self._adapter({
            url("post", "info"): {"ok": 1},
            url("delete", "info"): {"ok": 1},
            url("get", "info"): {"ok": 1},
        })
        resource = Machine()

        for intent in ("create", "update", "patch", "delete", "read"):
            adapter.sync(intent, resource, {"success": lambda *args: None})

        self.assertEqual(
            [prepared.method for prepared in session.sent],
            ["POST", "POST", "POST", "DELETE", "GET"],
        )
        self.assertEqual(
            session.urls(),
            [url("post", "info")] * 3 + [url("delete", "info"), url("get", "info")],
        )

    def test_admin_key_is_a_path_segment_before_the_verb(self):
        adapter, session = self._adapter({url("get", "info", "s3cr3t"): {"ok": 1}}, admin_key="s3cr3t")

        adapter.sync("read", Machine(), {"success": lambda *args: None})

        self.assertEqual(session.urls(), ["http://object.test/machine/s3cr3t/get/info"])

    def test_resource_url_may_be_callable(self):
        class Dynamic(Model):
            def url(self):
                return f"items/{self.get('name')}"

        adapter, session = self._adapter({url("get", "items/ball"): {"ok": 1}})
        adapter.sync("read", Dynamic({"name": "ball"}), {"success": lambda *args: None})

        self.assertEqual(session.urls(), [url("get", "items/ball")])

    def test_body_defaults_to_post_json_and_is_json_encoded(self):
        adapter, session = self._adapter({url("post", "info"): {"ok": 1}})

        adapter.sync("update", Machine({"name": "m1"}), {"success": lambda *args: None})

        prepared = session.sent[0]
        self.assertEqual(prepared.headers["Content-Type"], "application/json")
        self.assertEqual(json.loads(prepared.body), {"intent": "update", "verb": "post", "name": "m1"})

    def test_explicit_attrs_replace_post_json(self):
        adapter, session = self._adapter({url("post", "info"): {"ok": 1}})

        adapter.sync("patch", Machine({"name": "m1"}), {"attrs": {"price": 5}, "success": lambda *args: None})

        self.assertEqual(json.loads(session.sent[0].body), {"price": 5})

    def test_unknown_intent_is_rejected(self):
        adapter, session = self._adapter({})
        with self.assertRaises(UnknownIntentError):
            adapter.sync("upsert", Machine(), {})
        self.assertEqual(session.sent, [])

    def test_timeout_comes_from_settings(self):
        adapter, session = self._adapter({url("get", "info"): {"ok": 1}})
        adapter.sync("read", Machine(), {"success": lambda *args: None})
        self.assertEqual(session.send_kwargs[0]["timeout"], 5.0)


class TestSyncAdapterResults(unittest.TestCase):
    def _adapter(self, routes):
        return SyncAdapter(make_settings(), admin_store(), session=FakeSession(routes))

    def test_non_null_body_reaches_success_unchanged(self):
        adapter = self._adapter({url("get", "info"): {"price": 10, "extra": {"a": 1}}})
        success = MagicMock()
        error = MagicMock()
        resource = Machine()

        adapter.sync("read", resource, {"success": success, "error": error})

        success.assert_called_once()
        target, body, _ = success.call_args[0]
        self.assertIs(target, resource)
        self.assertEqual(body, {"price": 10, "extra": {"a": 1}})
        error.assert_not_called()

    def test_null_body_goes_to_error_handler(self):
        adapter = self._adapter({url("get", "info"): None})
        success = MagicMock()
        error = MagicMock()

        adapter.sync("read", Machine(), {"success": success, "error": error})

        success.assert_not_called()
        error.assert_called_once()
        self.assertIsNone(error.call_args[0][1])

    def test_null_body_without_error_handler_raises(self):
        adapter = self._adapter({url("get", "info"): None})
        success = MagicMock()

        with self.assertRaises(SyncError) as ctx:
            adapter.sync("read", Machine(), {"success": success})

        success.assert_not_called()
        self.assertIsNone(ctx.exception.failure)
        self.assertEqual(ctx.exception.intent, "read")

    def test_transport_failure_without_error_handler_raises(self):
        adapter = self._adapter({url("get", "info"): requests.ConnectionError("refused")})

        with self.assertRaises(SyncError) as ctx:
            adapter.sync("read", Machine(), {})

        self.assertIsInstance(ctx.exception.failure, requests.ConnectionError)
        self.assertIn("There was an error talking with the object", str(ctx.exception))

    def test_http_error_status_goes_to_error_handler(self):
        adapter = self._adapter({url("get", "info"): (500, {"detail": "boom"})})
        error = MagicMock()

        adapter.sync("read", Machine(), {"error": error})

        error.assert_called_once()
        self.assertIsInstance(error.call_args[0][1], requests.HTTPError)

    def test_streamed_response_is_closed_when_the_status_fails(self):
        session = FakeSession({url("get", "info"): (500, {"detail": "boom"})})
        adapter = SyncAdapter(make_settings(), admin_store(), session=session)

        adapter.sync("read", Machine(), {"error": MagicMock(), "progress": lambda fraction: None})

        self.assertTrue(session.send_kwargs[0]["stream"])
        self.assertTrue(session.responses[0].raw.closed)

    def test_request_event_fires_with_the_prepared_handle(self):
        adapter = self._adapter({url("get", "info"): {"ok": 1}})
        resource = Machine()
        seen = []
        resource.on("request", lambda target, handle, options: seen.append((target, handle, options.handle)))

        handle = adapter.sync("read", resource, {"success": lambda *args: None})

        self.assertEqual(len(seen), 1)
        target, event_handle, options_handle = seen[0]
        self.assertIs(target, resource)
        self.assertIs(event_handle, handle)
        self.assertIs(options_handle, handle)
        self.assertEqual(handle.url, url("get", "info"))

    def test_progress_reports_byte_fractions_up_to_one(self):
        adapter = self._adapter({url("get", "info"): {"name": "x" * 20000}})
        fractions = []

        adapter.sync("read", Machine(), {"success": lambda *args: None, "progress": fractions.append})

        self.assertGreater(len(fractions), 1)
        self.assertEqual(fractions, sorted(fractions))
        self.assertEqual(fractions[-1], 1.0)


if __name__ == "__main__":
    unittest.main()
