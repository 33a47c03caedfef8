import unittest

from engine.checkpoints import (
    CheckpointMode,
    fixed_count_indices,
    fixed_interval_indices,
    generate_checkpoints,
    start_middle_end_indices,
    tag_checkpoints,
)
from tests.helpers import rotation_path


class CheckpointGenerationTests(unittest.TestCase):
    def test_fixed_interval_includes_last_frame(self) -> None:
        self.assertEqual(fixed_interval_indices(25, 10), [0, 10, 20, 24])
        self.assertEqual(fixed_interval_indices(21, 10), [0, 10, 20])

    def test_fixed_count(self) -> None:
        self.assertEqual(fixed_count_indices(100, 5), [0, 25, 50, 75, 99])
        self.assertEqual(fixed_count_indices(3, 5), [0, 1, 2])

    def test_start_middle_end(self) -> None:
        self.assertEqual(start_middle_end_indices(120), [0, 60, 119])
        self.assertEqual(start_middle_end_indices(1), [0])

    def test_distance_mode_uses_travelled_distance(self) -> None:
        path = rotation_path(frame_count=11, step=1.0, checkpoints=False)
        self.assertEqual(generate_checkpoints(path, CheckpointMode.DISTANCE, distance=5.0), [0, 5, 10])

    def test_tag_checkpoints_names_segments(self) -> None:
        path = tag_checkpoints(rotation_path(frame_count=30, checkpoints=False), [0, 10, 20, 29])
        self.assertEqual(path.checkpoint_indices, (0, 10, 20, 29))
        names = [path.frames[index].checkpoint for index in path.checkpoint_indices]
        self.assertEqual(names, ["Start", "Segment 1", "Segment 2", "End"])

    def test_tag_checkpoints_replaces_existing_tags(self) -> None:
        path = rotation_path(frame_count=30)
        retagged = tag_checkpoints(path, [5], names=["Grip"])
        self.assertEqual(retagged.checkpoint_indices, (5,))
        self.assertEqual(retagged.frames[5].checkpoint, "Grip")

    def test_tag_checkpoints_rejects_out_of_range(self) -> None:
        with self.assertRaises(ValueError):
            tag_checkpoints(rotation_path(frame_count=5, checkpoints=False), [7])


if __name__ == "__main__":
    unittest.main()
