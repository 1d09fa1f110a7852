"""Tests for group continuity: starts, changes, leader changes and ends."""

import unittest

from sloth_watch.groups import (
    GroupEventType,
    find_successor,
    format_elapsed,
    overlap_rates,
    reconcile_groups,
    started_marker,
)
from sloth_watch.models import Group


NOW = 1_700_000_000


def _group(leader, members, name="Dragon hunt", continent="Tamarael", original_leader=None, started_at=None):
    return Group(
        leader=leader,
        original_leader=original_leader or leader,
        name=name,
        continent=continent,
        members=set(members),
        started_at=started_at,
        moved_to_continent_at=started_at,
    )


def _types(result):
    return [e.type for e in result.events]


class TestOverlap(unittest.TestCase):
    def test_exact_threshold_is_leader_change(self):
        old = _group("Alice", [f"m{i}" for i in range(10)])
        candidate = _group("Bob", [f"m{i}" for i in range(6)] + [f"n{i}" for i in range(4)])
        self.assertEqual(overlap_rates(old, candidate), (0.6, 0.6))
        self.assertIs(find_successor(old, [candidate], 0.6), candidate)

    def test_just_below_threshold_is_over(self):
        old = _group("Alice", [f"m{i}" for i in range(100)])
        candidate = _group("Bob", [f"m{i}" for i in range(59)] + [f"n{i}" for i in range(41)])
        self.assertIsNone(find_successor(old, [candidate], 0.6))

    def test_both_directions_must_pass(self):
        old = _group("Alice", [f"m{i}" for i in range(10)])
        # 6/10 of the old group, but only 6/11 of the candidate
        candidate = _group("Bob", [f"m{i}" for i in range(6)] + [f"n{i}" for i in range(5)])
        self.assertIsNone(find_successor(old, [candidate], 0.6))

    def test_first_qualifying_candidate_wins(self):
        old = _group("Alice", ["a", "b", "c", "d"])
        first = _group("Bob", ["a", "b", "c", "x"])
        second = _group("Carol", ["a", "b", "c", "d"])
        self.assertIs(find_successor(old, [first, second], 0.6), first)


class TestReconcileGroups(unittest.TestCase):
    def test_first_run_has_no_events(self):
        result = reconcile_groups(None, [_group("Alice", ["a", "b", "c"])], NOW)
        self.assertEqual(result.events, [])
        self.assertEqual(result.snapshot["Alice"].started_at, NOW)
        self.assertEqual(result.snapshot["Alice"].original_leader, "Alice")

    def test_small_groups_are_ignored(self):
        result = reconcile_groups({}, [_group("Alice", ["a", "b"])], NOW)
        self.assertEqual(result.events, [])
        self.assertEqual(result.snapshot, {})

    def test_started(self):
        result = reconcile_groups({}, [_group("Alice", ["a", "b", "c"])], NOW)
        self.assertEqual(_types(result), [GroupEventType.STARTED])
        self.assertEqual(
            result.events[0].message,
            "Alice started group 'Dragon hunt' on Tamarael. Group consists of 3 adventurers.",
        )
        self.assertTrue(result.events[0].message.startswith(started_marker("Alice")))

    def test_leader_change_keeps_identity(self):
        old = {"Alice": _group("Alice", ["Alice", "a", "b", "c", "d"], started_at=NOW - 600)}
        new = [_group("Bob", ["Bob", "a", "b", "c", "d"])]
        result = reconcile_groups(old, new, NOW)

        self.assertEqual(_types(result), [GroupEventType.LEADER_CHANGED])
        self.assertEqual(result.events[0].message, "Bob became the new leader.")
        self.assertEqual(result.events[0].previous_leader, "Alice")
        self.assertEqual(list(result.snapshot), ["Bob"])
        self.assertEqual(result.snapshot["Bob"].original_leader, "Alice")
        self.assertEqual(result.snapshot["Bob"].started_at, NOW - 600)

    def test_over(self):
        old = {"Alice": _group("Alice", ["Alice", "a", "b"])}
        result = reconcile_groups(old, [], NOW)
        self.assertEqual(_types(result), [GroupEventType.OVER])
        self.assertEqual(result.events[0].message, "The group was over.")
        self.assertEqual(result.snapshot, {})

    def test_successor_claimed_once(self):
        old = {
            "Alice": _group("Alice", ["a", "b", "c"]),
            "Carol": _group("Carol", ["a", "b", "c"]),
        }
        result = reconcile_groups(old, [_group("Bob", ["a", "b", "c"])], NOW)
        self.assertEqual(_types(result), [GroupEventType.LEADER_CHANGED, GroupEventType.OVER])
        self.assertEqual(result.events[1].group.leader, "Carol")

    def test_group_folds_into_tracked_leader(self):
        old = {
            "Alice": _group("Alice", ["Alice", "a", "b", "c", "d"], started_at=NOW - 600),
            "Bob": _group("Bob", ["Bob", "x", "y"], started_at=NOW - 300),
        }
        result = reconcile_groups(old, [_group("Bob", ["Bob", "a", "b", "c", "d"])], NOW)

        self.assertEqual(_types(result), [GroupEventType.LEADER_CHANGED, GroupEventType.GREW])
        changed = result.events[0]
        self.assertTrue(changed.merged)
        self.assertEqual(changed.previous_leader, "Alice")
        self.assertEqual(changed.message, "Bob became the new leader.")
        self.assertEqual((changed.group.original_leader, changed.group.started_at), ("Alice", NOW - 600))

        self.assertEqual(list(result.snapshot), ["Bob"])
        self.assertEqual(result.snapshot["Bob"].original_leader, "Bob")
        self.assertEqual(result.snapshot["Bob"].started_at, NOW - 300)

    def test_new_leader_preferred_over_tracked_one(self):
        old = {
            "Alice": _group("Alice", ["Alice", "a", "b", "c"]),
            "Bob": _group("Bob", ["Bob", "a", "b", "c"]),
        }
        new = [_group("Bob", ["Bob", "a", "b", "c"]), _group("Carol", ["Carol", "a", "b", "c"])]
        result = reconcile_groups(old, new, NOW)

        self.assertEqual(_types(result), [GroupEventType.LEADER_CHANGED])
        self.assertFalse(result.events[0].merged)
        self.assertEqual(result.events[0].group.leader, "Carol")

    def test_rename_move_and_growth(self):
        old = {"Alice": _group("Alice", ["a", "b", "c", "d", "e"], started_at=NOW - 60)}
        new = [_group("Alice", ["a", "b", "c", "d", "e", "f", "g", "h"], name="Lich raid", continent="Valkyre")]
        result = reconcile_groups(old, new, NOW)

        self.assertEqual(
            _types(result),
            [GroupEventType.RENAMED, GroupEventType.MOVED, GroupEventType.GREW],
        )
        self.assertEqual(
            [e.message for e in result.events],
            [
                "Alice has changed group name to 'Lich raid'.",
                "The group has moved to Valkyre.",
                "The group has become bigger. Now it has as many as 8 adventurers.",
            ],
        )
        self.assertFalse(result.events[0].restarts_session)
        self.assertTrue(result.events[1].restarts_session)
        self.assertEqual(result.snapshot["Alice"].moved_to_continent_at, NOW)
        self.assertEqual(result.snapshot["Alice"].started_at, NOW - 60)

    def test_shrink_within_bucket_is_silent(self):
        old = {"Alice": _group("Alice", ["a", "b", "c", "d", "e", "f", "g"])}
        new = [_group("Alice", ["a", "b", "c", "d", "e", "f"])]
        self.assertEqual(reconcile_groups(old, new, NOW).events, [])

    def test_shrink_across_bucket(self):
        old = {"Alice": _group("Alice", ["a", "b", "c", "d", "e", "f", "g", "h"])}
        new = [_group("Alice", ["a", "b", "c", "d", "e", "f", "g"])]
        result = reconcile_groups(old, new, NOW)
        self.assertEqual(_types(result), [GroupEventType.SHRANK])
        self.assertEqual(result.events[0].message, "The group has become smaller. Now it has only 7 adventurers.")

    def test_snapshots_share_no_members(self):
        old = {"Alice": _group("Alice", ["a", "b", "c"])}
        result = reconcile_groups(old, [_group("Alice", ["a", "b", "c"])], NOW)
        result.snapshot["Alice"].members.add("z")
        self.assertNotIn("z", old["Alice"].members)


class TestFormatting(unittest.TestCase):
    def test_format_elapsed(self):
        self.assertEqual(format_elapsed(NOW, NOW + 3725), "(+01:02)")
        self.assertEqual(format_elapsed(None, NOW), "(+00:00)")

    def test_started_without_continent(self):
        result = reconcile_groups({}, [_group("Alice", ["a", "b", "c"], continent="")], NOW)
        self.assertEqual(
            result.events[0].message,
            "Alice started group 'Dragon hunt'. Group consists of 3 adventurers.",
        )


if __name__ == "__main__":
    unittest.main()
