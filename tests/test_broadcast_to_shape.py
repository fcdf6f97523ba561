import numpy as np
import pytest

from symgrad.binary_ops import broadcast_to_shape, reduce_to_shape
from symgrad.errors import BroadcastFailure
from symgrad.graph import Graph


def test_pass_through():
    gy = np.ones((2, 3))
    assert broadcast_to_shape(gy, (2, 3)) is gy


def test_scalar_fills_target():
    out = broadcast_to_shape(np.array(1.5), (2, 3))
    assert out.shape == (2, 3)
    assert np.all(out == 1.5)


def test_vector_and_size_one_axes():
    out = broadcast_to_shape(np.array([1.0, 2.0, 3.0]), (2, 3))
    assert np.array_equal(out, [[1.0, 2.0, 3.0], [1.0, 2.0, 3.0]])

    out = broadcast_to_shape(np.array([[1.0], [2.0]]), (2, 4))
    assert np.array_equal(out, [[1.0] * 4, [2.0] * 4])


def test_result_is_owned():
    gy = np.array([1.0, 2.0, 3.0])
    out = broadcast_to_shape(gy, (4, 3))
    assert out.flags.writeable
    assert not np.shares_memory(out, gy)
    out[0, 0] = 100.0
    assert gy[0] == 1.0


def test_impossible_broadcast_fails():
    with pytest.raises(BroadcastFailure) as ei:
        broadcast_to_shape(np.ones((3,)), (2, 4))
    assert ei.value.shapes == ((3,), (2, 4))


def test_reduce_then_expand_is_shape_consistent():
    rng = np.random.default_rng(0)
    pairs = [
        ((4,), (3, 4)),
        ((), (2, 3)),
        ((2, 1), (2, 5)),
        ((1, 3), (4, 2, 3)),
        ((3, 1, 2), (3, 4, 2)),
        ((2, 3), (2, 3)),
    ]
    for x_shape, out_shape in pairs:
        gy = rng.standard_normal(out_shape)
        back = broadcast_to_shape(reduce_to_shape(gy, x_shape), out_shape)
        assert back.shape == out_shape, f"{x_shape} -> {out_shape}"


def test_broadcast_node_declares_target_shape():
    g = Graph()
    v = g.variable((3,))
    b = g.broadcast_to_shape(v, (2, 3))
    assert b.shape == (2, 3)
    out = g.eval(b, {v: np.array([1.0, 2.0, 3.0])})
    assert out.shape == (2, 3)


def main():
    test_pass_through()
    test_scalar_fills_target()
    test_vector_and_size_one_axes()
    test_result_is_owned()
    test_impossible_broadcast_fails()
    test_reduce_then_expand_is_shape_consistent()
    test_broadcast_node_declares_target_shape()
    print("[OK] broadcast_to_shape works")


if __name__ == "__main__":
    main()
