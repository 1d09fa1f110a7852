"""Tests for epic reconciliation and the epics report."""

import unittest

from sloth_watch.epics import format_age, reconcile_epics, render_epics_report
from sloth_watch.models import Epic


NOW = 1_700_000_000


class TestReconcileEpics(unittest.TestCase):
    def test_first_run_sets_spawn_time(self):
        result = reconcile_epics(None, [Epic("Thordak", "Dark Hold", "Valkyre")], NOW)
        self.assertEqual(result.appeared, [])
        self.assertTrue(result.changed)
        self.assertEqual(result.snapshot[0].spawned_at, NOW)

    def test_empty_page_is_skipped(self):
        old = [Epic("Thordak", "Dark Hold", "Valkyre", NOW - 100)]
        result = reconcile_epics(old, [], NOW)
        self.assertTrue(result.skipped)
        self.assertIs(result.snapshot, old)

    def test_appeared_killed_and_carried(self):
        old = [
            Epic("Thordak", "Dark Hold", "Valkyre", NOW - 7200),
            Epic("Vermin", "Sewers", "Tamarael", NOW - 300),
        ]
        new = [
            Epic("Vermin", "Sewers", "Tamarael"),
            Epic("Lich", "Crypt", "Tamarael"),
        ]
        result = reconcile_epics(old, new, NOW)

        self.assertEqual([e.name for e in result.appeared], ["Lich"])
        self.assertEqual([e.name for e in result.killed], ["Thordak"])
        self.assertTrue(result.changed)
        spawned = {e.name: e.spawned_at for e in result.snapshot}
        self.assertEqual(spawned, {"Vermin": NOW - 300, "Lich": NOW})

    def test_unchanged(self):
        old = [Epic("Vermin", "Sewers", "Tamarael", NOW - 300)]
        result = reconcile_epics(old, [Epic("Vermin", "Sewers", "Tamarael")], NOW)
        self.assertFalse(result.changed)


class TestEpicsReport(unittest.TestCase):
    def test_format_age(self):
        self.assertEqual(format_age(30), "just now")
        self.assertEqual(format_age(5 * 60), "5m ago")
        self.assertEqual(format_age(2 * 3600 + 15 * 60), "2h 15m ago")
        self.assertEqual(format_age(26 * 3600), "1d 2h ago")

    def test_grouped_by_continent_order(self):
        epics = [
            Epic("Thordak", "Dark Hold", "Valkyre", NOW - 7200),
            Epic("Ghost", "Isle", "Alterra", NOW - 7200),
            Epic("Vermin", "Sewers", "Tamarael", NOW - 10),
        ]
        report = render_epics_report(epics, NOW)
        self.assertEqual(
            report,
            "**Tamarael**\n"
            "1. **Vermin** in Sewers, appeared just now\n"
            "\n"
            "**Valkyre**\n"
            "2. Thordak in Dark Hold, appeared 2h 0m ago\n"
            "\n"
            "**Alterra**\n"
            "3. Ghost in Isle, appeared 2h 0m ago",
        )


if __name__ == "__main__":
    unittest.main()
