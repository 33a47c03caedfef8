import unittest

from chuna.evaluation.hold import HoldTracker


class HoldTrackerTests(unittest.TestCase):
    def test_accumulates_while_predicate_holds(self) -> None:
        tracker = HoldTracker(1.0)
        self.assertEqual(tracker.update(True, 0.25), (0.25, 1.0))
        self.assertEqual(tracker.update(True, 0.25).current_time, 0.5)
        self.assertFalse(tracker.completed)

    def test_resets_when_predicate_fails(self) -> None:
        tracker = HoldTracker(1.0)
        tracker.update(True, 0.5)
        self.assertEqual(tracker.update(False, 0.25).current_time, 0.0)
        self.assertEqual(tracker.update(True, 0.25).current_time, 0.25)

    def test_completion_freezes_at_required_time(self) -> None:
        tracker = HoldTracker(0.5)
        tracker.update(True, 0.25)
        progress = tracker.update(True, 0.5)
        self.assertEqual(progress.current_time, 0.5)
        self.assertTrue(tracker.completed)
        self.assertTrue(tracker.just_completed)
        self.assertEqual(tracker.total_completed_time, 0.5)

        frozen = tracker.update(False, 0.25)
        self.assertEqual(frozen.current_time, 0.5)
        self.assertFalse(tracker.just_completed)
        self.assertEqual(tracker.total_completed_time, 0.5)

    def test_rearm_keeps_completed_total(self) -> None:
        tracker = HoldTracker(0.5)
        tracker.update(True, 0.5)
        tracker.rearm()
        self.assertEqual(tracker.state.current_time, 0.0)
        self.assertFalse(tracker.state.completed)
        tracker.update(True, 0.5)
        self.assertEqual(tracker.total_completed_time, 1.0)
        tracker.reset()
        self.assertEqual(tracker.total_completed_time, 0.0)

    def test_required_time_must_be_positive(self) -> None:
        with self.assertRaises(ValueError):
            HoldTracker(0.0)


if __name__ == "__main__":
    unittest.main()
