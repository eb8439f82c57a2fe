"""Tests for the gacha's derived state: mirrored info, owner payout, views and dirty tracking."""
from __future__ import annotations

import json
import unittest
from unittest.mock import MagicMock

from gacha_node.entities import Payouts

from http_fakes import url
from test_gacha_fetch import INFO, PAYOUTS, build_gacha, object_routes


def fetched_admin_gacha(**overrides):
    routes = object_routes("k", **overrides)
    routes[url("post", "gacha", "k")] = {"saved": True}
    gacha, session = build_gacha(routes, admin_key="k")
    gacha.fetch({"load_admin": True})
    return gacha, session


class TestInfoExtraMirror(unittest.TestCase):
    def test_info_extra_follows_info(self):
        gacha, _ = build_gacha({})

        gacha.get("info").set("extra", {"btn_price": 7, "title": "Hats"})

        self.assertEqual(gacha.get("info_extra").attributes, {"btn_price": 7, "title": "Hats"})

    def test_info_follows_info_extra(self):
        gacha, _ = build_gacha({})
        gacha.get("info").set("extra", {"btn_price": 7})

        gacha.get("info_extra").set("title", "Hats")

        self.assertEqual(gacha.get("info").get("extra"), {"btn_price": 7, "title": "Hats"})

    def test_info_extra_is_replaced_not_merged(self):
        gacha, _ = build_gacha({})
        gacha.get("info").set("extra", {"btn_price": 7, "title": "Hats"})

        gacha.get("info").set("extra", {"btn_price": 9})

        self.assertEqual(gacha.get("info_extra").attributes, {"btn_price": 9})

    def test_mirroring_settles_after_one_round_trip(self):
        gacha, _ = build_gacha({})
        info_changes = []
        gacha.get("info").on("change:extra", lambda model, value: info_changes.append(value))

        gacha.get("info_extra").set("title", "Hats")

        self.assertEqual(info_changes, [{"title": "Hats"}])

    def test_mirrored_values_are_not_shared(self):
        gacha, _ = build_gacha({})
        gacha.get("info").set("extra", {"tags": ["a"]})

        gacha.get("info_extra").get("tags").append("b")

        self.assertEqual(gacha.get("info").get("extra"), {"tags": ["a"]})


class TestOwnerPayout(unittest.TestCase):
    def test_owner_line_tracks_other_lines_and_price(self):
        gacha, _ = fetched_admin_gacha()
        payouts = gacha.get("payouts")
        owner = payouts.get("owner")
        self.assertEqual(owner.get("amount"), 15)

        payouts.get("A").set("amount", 8)
        self.assertEqual(owner.get("amount"), 12)

        gacha.get("info_extra").set("btn_price", 30)
        self.assertEqual(owner.get("amount"), 22)

        payouts.add({"agentKey": "B", "amount": 4})
        self.assertEqual(owner.get("amount"), 18)

        payouts.remove("A")
        self.assertEqual(owner.get("amount"), 26)

        payouts.reset([{"agentKey": "owner", "amount": 0}, {"agentKey": "C", "amount": 1}])
        self.assertEqual(payouts.get("owner").get("amount"), 29)

    def test_empty_ledger_gets_one_owner_line_at_completion(self):
        gacha, _ = fetched_admin_gacha(payouts=[])
        payouts = gacha.get("payouts")

        self.assertEqual(len(payouts), 1)
        owner = payouts.at(0)
        self.assertEqual(owner.get("agentKey"), "owner")
        self.assertEqual(owner.get("amount"), INFO["price"])
        self.assertEqual(owner.get("userName"), "owner.resident")
        self.assertEqual(owner.get("displayName"), "Owner")

    def test_button_price_falls_back_to_info_price(self):
        info = dict(INFO, extra={}, price=12)
        gacha, _ = fetched_admin_gacha(info=info, payouts=[])

        self.assertEqual(gacha.get("payouts").get("owner").get("amount"), 12)

    def test_replaced_ledger_is_wired_again(self):
        gacha, _ = fetched_admin_gacha()
        old = gacha.get("payouts")
        replacement = Payouts([{"agentKey": "owner", "amount": 0}, {"agentKey": "Z", "amount": 2}], gacha=gacha)

        gacha.set("payouts", replacement)
        replacement.get("Z").set("amount", 5)

        self.assertEqual(replacement.get("owner").get("amount"), 15)
        old.get("A").set("amount", 1)
        self.assertEqual(old.get("owner").get("amount"), 15)

    def test_row_context_reflects_admin_and_owner(self):
        gacha, _ = fetched_admin_gacha()
        payouts = gacha.get("payouts")

        self.assertTrue(gacha.payout_row_context(payouts.get("owner")).readonly)
        self.assertTrue(gacha.payout_row_context(payouts.get("A")).deletable)

    def test_validate_flags_negative_owner_line(self):
        gacha, _ = fetched_admin_gacha()
        self.assertEqual(gacha.validate(), [])
        self.assertTrue(gacha.get("isValid"))

        gacha.get("payouts").get("A").set("amount", 25)

        errors = gacha.validate()
        self.assertEqual(gacha.get("payouts").get("owner").get("amount"), -5)
        self.assertEqual(len(errors), 1)
        self.assertFalse(gacha.get("isValid"))


class TestViews(unittest.TestCase):
    def test_live_view_keeps_everything(self):
        gacha, _ = fetched_admin_gacha()

        live = gacha.to_json()

        for key in ("isValid", "progressPercentage", "overrideProgress", "info", "info_extra", "invs", "itemsProgressPercentage"):
            self.assertIn(key, live)
        self.assertEqual(live["info"]["ownerKey"], "owner")
        self.assertEqual(live["payouts"], [dict(line) for line in PAYOUTS])
        json.dumps(live)

    def test_notecard_view_keeps_only_persistable_sub_resources(self):
        gacha, _ = fetched_admin_gacha()

        notecard = gacha.to_notecard_json()

        self.assertEqual(set(notecard), {"info", "config", "payouts", "items"})
        self.assertEqual(notecard["info"], {"price": 20, "extra": {"btn_price": 20, "title": "Prizes"}})
        self.assertEqual(notecard["payouts"], [["A", 5], ["owner", 15]])
        self.assertEqual([item["name"] for item in notecard["items"]], ["ball", "cube"])

    def test_notecard_round_trips_into_a_fresh_gacha(self):
        gacha, _ = fetched_admin_gacha()
        fresh, _ = build_gacha({}, admin_key="k")
        fresh.get("info").set("ownerKey", "owner")

        fresh.from_notecard_json(gacha.to_notecard_json())

        self.assertEqual(fresh.to_notecard_json(), gacha.to_notecard_json())
        self.assertEqual(fresh.get("info_extra").get("btn_price"), 20)


class TestDirtyTracking(unittest.TestCase):
    def test_never_fetched_counts_as_changed(self):
        gacha, _ = build_gacha({})
        self.assertTrue(gacha.has_changed_since_fetch())

    def test_clean_right_after_fetch(self):
        gacha, _ = fetched_admin_gacha()
        self.assertFalse(gacha.has_changed_since_fetch())

    def test_persisted_mutation_marks_dirty(self):
        gacha, _ = fetched_admin_gacha()

        gacha.get("items").get("ball").set("rarity", 5.0)

        self.assertTrue(gacha.has_changed_since_fetch())

    def test_equal_value_mutation_stays_clean(self):
        gacha, _ = fetched_admin_gacha()

        gacha.get("items").get("ball").set("rarity", 1.0)
        gacha.get("info_extra").set("title", "Prizes")

        self.assertFalse(gacha.has_changed_since_fetch())

    def test_live_only_mutation_stays_clean(self):
        gacha, _ = fetched_admin_gacha()

        gacha.set("isValid", True)
        gacha.get("items").get("hat").set("active", False)

        self.assertFalse(gacha.has_changed_since_fetch())

    def test_owner_line_created_after_snapshot_is_a_change(self):
        gacha, _ = fetched_admin_gacha(payouts=[])
        self.assertTrue(gacha.has_changed_since_fetch())

    def test_save_posts_the_notecard_and_becomes_the_baseline(self):
        gacha, session = fetched_admin_gacha()
        gacha.get("info_extra").set("btn_price", 25)
        self.assertTrue(gacha.has_changed_since_fetch())
        success = MagicMock()

        gacha.save({"success": success})

        prepared = session.sent[-1]
        self.assertEqual(prepared.method, "POST")
        self.assertEqual(prepared.url, url("post", "gacha", "k"))
        self.assertEqual(json.loads(prepared.body), gacha.to_notecard_json())
        success.assert_called_once()
        self.assertFalse(gacha.has_changed_since_fetch())


class TestEventBubbling(unittest.TestCase):
    def test_sub_resource_events_reappear_on_the_gacha(self):
        gacha, _ = build_gacha(object_routes())
        seen = []
        gacha.on("all", lambda name, *args: seen.append((name, args[0] if args else None)))

        gacha.fetch()

        requested = [resource for name, resource in seen if name == "request"]
        self.assertEqual(requested, [gacha.get("info"), gacha.get("items")])
        synced = [resource for name, resource in seen if name == "sync"]
        self.assertEqual(synced, [gacha.get("info"), gacha.get("items")])


if __name__ == "__main__":
    unittest.main()
