import numpy as np

from pack3d.rotations import N_ROTATIONS, ROTATIONS, rotated_bounds, transform_matrix


def test_24_distinct_proper_rotations() -> None:
    assert N_ROTATIONS == 24
    np.testing.assert_array_equal(ROTATIONS[0], np.eye(3))
    for m in ROTATIONS:
        np.testing.assert_allclose(m @ m.T, np.eye(3), atol=1e-12)
        assert np.linalg.det(m) > 0.0
    assert len({m.tobytes() for m in ROTATIONS}) == 24


def test_rotated_bounds_permute_extents() -> None:
    half = np.array([0.5, 1.0, 2.0])
    corners = np.array([[sx, sy, sz] for sx in (-1, 1) for sy in (-1, 1) for sz in (-1, 1)], dtype=float) * half
    table = rotated_bounds(corners)

    assert table.shape == (24, 6)
    np.testing.assert_allclose(table[0], [-0.5, -1.0, -2.0, 0.5, 1.0, 2.0])
    extents = table[:, 3:] - table[:, :3]
    for row in extents:
        np.testing.assert_allclose(sorted(row), [1.0, 2.0, 4.0])
    # Every axis assignment of the extents shows up.
    assert len({tuple(np.round(row, 9)) for row in extents}) == 6


def test_transform_matrix_rotates_then_translates() -> None:
    m = transform_matrix(0, [1.0, 2.0, 3.0])
    np.testing.assert_allclose(m @ np.array([1.0, 1.0, 1.0, 1.0]), [2.0, 3.0, 4.0, 1.0])

    r = 5
    m = transform_matrix(r, [0.0, 0.0, 0.0])
    np.testing.assert_allclose(m[:3, :3], ROTATIONS[r])
