import unittest

from chuna.evaluation.config import EvaluationConfig
from chuna.evaluation.session import EvaluationSession, SessionState
from core.errors import ConfigurationError, IllegalStateError
from core.models import Severity
from engine.pose import PoseSample, ReferencePath
from tests.helpers import make_profile, rotation_path, sample_at


def _perfect_run(session: EvaluationSession, path: ReferencePath, dt: float = 0.25, extra: int = 4) -> None:
    timestamp = 0.0
    for index in range(len(path)):
        session.tick(sample_at(path, index, timestamp), dt)
        timestamp += dt
    for _ in range(extra):
        session.tick(sample_at(path, len(path) - 1, timestamp), dt)
        timestamp += dt


class EvaluationSessionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.config = EvaluationConfig(required_hold_time_s=0.5)
        self.profile = make_profile()
        self.path = rotation_path(frame_count=120)

    def test_perfect_run_earns_top_grade(self) -> None:
        session = EvaluationSession(self.config)
        session.start(self.profile, self.path)
        _perfect_run(session, self.path)
        result = session.complete()

        score = result.score
        self.assertEqual(score.path_compliance, score.max_path_compliance)
        self.assertEqual(score.safety, score.max_safety)
        self.assertEqual(score.accuracy, score.max_accuracy)
        self.assertEqual(score.stability, score.max_stability)
        self.assertEqual(result.grade, "A+")
        self.assertEqual([checkpoint.passed for checkpoint in result.checkpoints], [True, True, True])
        self.assertEqual(result.violations, ())
        self.assertEqual(session.state, SessionState.COMPLETED)
        self.assertIs(session.result, result)

    def test_checkpoints_record_crossing_time_and_segment_hold(self) -> None:
        session = EvaluationSession(self.config)
        session.start(self.profile, self.path)
        self.assertIsNone(session.path_progress)
        _perfect_run(session, self.path)
        result = session.complete()

        self.assertEqual([checkpoint.timestamp for checkpoint in result.checkpoints], [0.0, 15.0, 29.75])
        self.assertEqual([checkpoint.hold_time for checkpoint in result.checkpoints], [0.5, 0.5, 0.5])
        self.assertEqual(result.average_similarity, 1.0)
        self.assertEqual(result.to_payload()["average_similarity"], 1.0)

    def test_unreached_checkpoints_have_no_timing(self) -> None:
        session = EvaluationSession(self.config)
        session.start(self.profile, self.path)
        session.tick(sample_at(self.path, 0, 0.0), 0.25)
        result = session.complete()

        self.assertEqual(result.checkpoints[0].hold_time, 0.25)
        self.assertIsNone(result.checkpoints[-1].timestamp)
        self.assertIsNone(result.checkpoints[-1].hold_time)
        self.assertEqual(result.average_similarity, 1.0)

    def test_single_danger_tick(self) -> None:
        session = EvaluationSession(self.config)
        session.start(self.profile, self.path)
        session.tick(sample_at(self.path, 0, 0.0, neck_lateral_flexion_left=38.0), 0.1)

        violations = session.violations
        self.assertEqual(len(violations), 1)
        self.assertEqual(violations[0].severity, Severity.DANGEROUS)
        self.assertEqual(session.score.safety, 30.0 - self.profile.dangerous_deduction)

    def test_danger_resets_hold_while_on_path(self) -> None:
        session = EvaluationSession(self.config)
        session.start(self.profile, self.path)
        session.tick(sample_at(self.path, 0, 0.0), 0.25)
        self.assertEqual(session.hold_state.current_time, 0.25)
        session.tick(sample_at(self.path, 0, 0.25, neck_lateral_flexion_left=38.0), 0.25)

        self.assertEqual(session.hold_state.current_time, 0.0)
        self.assertFalse(session.hold_state.completed)

    def test_auto_revert_blocks_hold(self) -> None:
        session = EvaluationSession(self.config)
        session.start(self.profile, self.path)
        session.tick(sample_at(self.path, 0, 0.0, neck_rotation_right=66.0), 0.25)
        session.tick(sample_at(self.path, 0, 0.25, neck_rotation_right=66.0), 0.25)

        self.assertIn("neck_rotation_right", session.revert_targets)
        self.assertEqual(session.hold_state.current_time, 0.0)
        self.assertEqual(session.score.stability, 0.0)

    def test_second_start_is_rejected_without_disturbing_run(self) -> None:
        session = EvaluationSession(self.config)
        session.start(self.profile, self.path)
        session.tick(sample_at(self.path, 0), 0.25)
        before = session.score
        with self.assertRaises(IllegalStateError):
            session.start(self.profile, rotation_path(frame_count=10))
        self.assertEqual(session.state, SessionState.RUNNING)
        self.assertIs(session.path, self.path)
        self.assertEqual(session.score, before)

    def test_tick_and_complete_require_running(self) -> None:
        session = EvaluationSession(self.config)
        with self.assertRaises(IllegalStateError):
            session.tick(sample_at(self.path, 0), 0.1)
        with self.assertRaises(IllegalStateError):
            session.complete()
        session.start(self.profile, self.path)
        session.abort()
        self.assertEqual(session.state, SessionState.ABORTED)
        self.assertIsNone(session.result)
        with self.assertRaises(IllegalStateError):
            session.tick(sample_at(self.path, 0), 0.1)

    def test_invalid_configuration_creates_nothing(self) -> None:
        session = EvaluationSession(self.config)
        with self.assertRaises(ConfigurationError):
            session.start(make_profile(warning_ratio=0.99), self.path)
        with self.assertRaises(ConfigurationError):
            session.start(self.profile, ReferencePath(frames=()))
        with self.assertRaises(ConfigurationError):
            session.start(None, self.path)  # type: ignore[arg-type]
        with self.assertRaises(ConfigurationError):
            session.start(self.profile, None)  # type: ignore[arg-type]
        self.assertEqual(session.state, SessionState.IDLE)
        self.assertIsNone(session.score)
        self.assertIsNone(session.path_progress)

    def test_invalid_engine_config(self) -> None:
        with self.assertRaises(ConfigurationError):
            EvaluationSession(EvaluationConfig(grade_cutoffs=((50.0, "B"), (90.0, "A"))))

    def test_rejected_sample_is_skipped_atomically(self) -> None:
        session = EvaluationSession(self.config)
        session.start(self.profile, self.path)
        session.tick(sample_at(self.path, 0, 0.0), 0.25)
        progress = session.path_progress
        violations = session.violations

        bad = PoseSample(timestamp=0.25, values={"neck_rotation_left": float("nan"), "wrist_flexion": 10.0})
        session.tick(bad, 0.25)
        session.tick(PoseSample(timestamp=0.5, values={"wrist_flexion": 10.0}), 0.1)

        self.assertEqual(session.path_progress, progress)
        self.assertEqual(session.violations, violations)
        self.assertEqual(session.samples_rejected, 2)
        self.assertEqual(session.ticks_evaluated, 1)
        self.assertAlmostEqual(session.elapsed_s, 0.6)
        # The hold keeps timing on the last accepted predicate.
        self.assertTrue(session.hold_state.completed)

    def test_negative_dt_is_refused(self) -> None:
        session = EvaluationSession(self.config)
        session.start(self.profile, self.path)
        with self.assertRaises(ValueError):
            session.tick(sample_at(self.path, 0), -0.1)
        self.assertEqual(session.ticks_evaluated, 0)

    def test_replay_is_deterministic(self) -> None:
        outputs = []
        for _ in range(2):
            session = EvaluationSession(self.config)
            session.start(self.profile, self.path)
            for index in range(0, 120, 3):
                session.tick(sample_at(self.path, index, index * 0.1, neck_flexion=37.0 if index % 30 == 0 else 5.0), 0.1)
            outputs.append(session.complete().to_json())
        self.assertEqual(outputs[0], outputs[1])

    def test_session_can_restart_after_completion(self) -> None:
        session = EvaluationSession(self.config)
        session.start(self.profile, self.path)
        session.tick(sample_at(self.path, 0, 0.0, neck_flexion=44.0), 0.1)
        session.complete()
        session.start(self.profile, self.path)
        self.assertEqual(session.violations, ())
        self.assertIsNone(session.result)
        self.assertIsNone(session.path_progress)


class SessionNotificationTests(unittest.TestCase):
    def setUp(self) -> None:
        self.config = EvaluationConfig(required_hold_time_s=0.5)
        self.path = rotation_path(frame_count=10)
        self.session = EvaluationSession(self.config)
        self.calls: list[tuple] = []
        events = self.session.events
        events.path_progress.subscribe(lambda *args: self.calls.append(("path",) + args))
        events.checkpoint_passed.subscribe(lambda name: self.calls.append(("checkpoint", name)))
        events.safety_warning.subscribe(lambda message: self.calls.append(("warning", message)))
        events.revert_required.subscribe(lambda target: self.calls.append(("revert", target.measurement)))
        events.hold_progress.subscribe(lambda *args: self.calls.append(("hold",) + args))
        events.hold_completed.subscribe(lambda: self.calls.append(("hold_done",)))
        events.score_changed.subscribe(lambda score: self.calls.append(("score", score.total)))

    def test_notifications_follow_tick_order(self) -> None:
        self.session.start(make_profile(), self.path)
        self.session.tick(sample_at(self.path, 0, 0.0, neck_rotation_right=66.0), 0.25)
        kinds = [call[0] for call in self.calls]
        self.assertEqual(kinds, ["path", "checkpoint", "warning", "revert", "score"])

        self.calls.clear()
        self.session.tick(sample_at(self.path, 0, 0.25, neck_rotation_right=0.0), 0.25)
        self.assertEqual([call[0] for call in self.calls], ["hold", "score"])

    def test_rearmed_hold_reports_reset(self) -> None:
        self.session.start(make_profile(), self.path)
        self.session.tick(sample_at(self.path, 0, 0.0), 0.25)
        self.session.tick(sample_at(self.path, 0, 0.25), 0.25)
        self.assertIn(("hold_done",), self.calls)

        self.calls.clear()
        # Crosses the middle checkpoint off-path: wrist is 20 degrees away from every frame.
        self.session.tick(sample_at(self.path, 5, 0.5, wrist_flexion=30.0), 0.25)
        hold_calls = [call for call in self.calls if call[0] == "hold"]
        self.assertEqual(hold_calls, [("hold", 0.0, 0.5)])
        self.assertEqual(self.session.hold_state.current_time, 0.0)

    def test_rearm_on_path_reports_fresh_progress(self) -> None:
        self.session.start(make_profile(), self.path)
        self.session.tick(sample_at(self.path, 0, 0.0), 0.25)
        self.session.tick(sample_at(self.path, 0, 0.25), 0.25)
        self.calls.clear()
        self.session.tick(sample_at(self.path, 5, 0.5), 0.0)
        self.assertIn(("hold", 0.0, 0.5), self.calls)
        self.assertIn(("checkpoint", "Segment 1"), self.calls)

    def test_path_progress_only_on_change(self) -> None:
        self.session.start(make_profile(), self.path)
        self.session.tick(sample_at(self.path, 0), 0.25)
        self.session.tick(sample_at(self.path, 0), 0.25)
        self.session.tick(sample_at(self.path, 1), 0.25)
        path_calls = [call for call in self.calls if call[0] == "path"]
        self.assertEqual([call[1] for call in path_calls], [0, 1])
        self.assertEqual(self.calls.count(("hold_done",)), 1)
        self.assertIn(("checkpoint", "Start"), self.calls)

    def test_score_snapshot_matches_session(self) -> None:
        seen = []
        self.session.events.score_changed.subscribe(seen.append)
        self.session.start(make_profile(), self.path)
        self.session.tick(sample_at(self.path, 0), 0.25)
        self.assertIs(seen[-1], self.session.score)

    def test_unsubscribe_stops_notifications(self) -> None:
        seen = []
        callback = self.session.events.score_changed.subscribe(seen.append)
        self.session.start(make_profile(), self.path)
        self.session.tick(sample_at(self.path, 0), 0.25)
        self.session.events.score_changed.unsubscribe(callback)
        self.session.tick(sample_at(self.path, 0), 0.25)
        self.assertEqual(len(seen), 1)

    def test_completion_notifies_result(self) -> None:
        results = []
        self.session.events.session_completed.subscribe(results.append)
        self.session.start(make_profile(), self.path)
        result = self.session.complete()
        self.assertEqual(results, [result])
        self.assertFalse(result.checkpoints[0].passed)


if __name__ == "__main__":
    unittest.main()
