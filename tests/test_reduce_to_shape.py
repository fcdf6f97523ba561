import numpy as np
import pytest

from symgrad.binary_ops import reduce_to_shape
from symgrad.errors import GradientShapeInconsistent
from symgrad.graph import Graph


def test_identity_when_not_broadcast():
    gy = np.arange(6.0).reshape(2, 3)
    assert reduce_to_shape(gy, (2, 3)) is gy


def test_identity_through_graph_is_view():
    g = Graph()
    v = g.variable((2, 3))
    r = g.reduce_to_shape(v, (2, 3))
    gy = np.arange(6.0).reshape(2, 3)
    out = g.eval(r, {v: gy})
    assert np.array_equal(out, gy)
    assert np.shares_memory(out, gy)


def test_sums_leading_broadcast_axis():
    gy = np.ones((3, 4))
    out = reduce_to_shape(gy, (4,))
    assert out.shape == (4,)
    assert np.all(out == 3.0)


def test_scalar_target_sums_everything():
    out = reduce_to_shape(np.ones((2, 3)), ())
    assert out.shape == ()
    assert float(out) == 6.0


def test_size_one_axes_are_kept():
    gy = np.arange(6.0).reshape(2, 3)
    assert np.array_equal(reduce_to_shape(gy, (1, 3)), [[3.0, 5.0, 7.0]])
    assert np.array_equal(reduce_to_shape(gy, (2, 1)), [[3.0], [12.0]])
    assert np.array_equal(reduce_to_shape(gy, (1, 1)), [[15.0]])


def test_leading_and_inner_axes_together():
    out = reduce_to_shape(np.ones((4, 2, 3)), (2, 1))
    assert out.shape == (2, 1)
    assert np.all(out == 12.0)


def test_size_one_gradient_to_scalar_is_copied():
    gy = np.array([[5.0]])
    out = reduce_to_shape(gy, ())
    assert out.shape == ()
    assert float(out) == 5.0
    assert not np.shares_memory(out, gy)


def test_target_axis_larger_than_gradient_fails():
    with pytest.raises(GradientShapeInconsistent):
        reduce_to_shape(np.ones((1,)), (2,))
    with pytest.raises(GradientShapeInconsistent):
        reduce_to_shape(np.ones((3, 1)), (3, 2))


def test_non_broadcast_mismatch_fails():
    with pytest.raises(GradientShapeInconsistent):
        reduce_to_shape(np.ones((4,)), (3,))
    with pytest.raises(GradientShapeInconsistent):
        reduce_to_shape(np.ones((3,)), (2, 3))


def test_reduce_node_reports_node_id():
    g = Graph()
    v = g.variable()
    r = g.reduce_to_shape(v, (2,))
    with pytest.raises(GradientShapeInconsistent) as ei:
        g.eval(r, {v: np.ones((1,))})
    assert ei.value.node == r.id
    assert f"[node {r.id}]" in str(ei.value)


def main():
    test_identity_when_not_broadcast()
    test_identity_through_graph_is_view()
    test_sums_leading_broadcast_axis()
    test_scalar_target_sums_everything()
    test_size_one_axes_are_kept()
    test_leading_and_inner_axes_together()
    test_size_one_gradient_to_scalar_is_copied()
    test_target_axis_larger_than_gradient_fails()
    test_non_broadcast_mismatch_fails()
    test_reduce_node_reports_node_id()
    print("[OK] reduce_to_shape works")


if __name__ == "__main__":
    main()
