import numpy as np
import pytest

from symgrad.config import using_config
from symgrad.errors import (
    BroadcastFailure,
    GradientShapeInconsistent,
    GraphError,
    NumericalError,
    ShapeError,
    ShapeIncompatible,
    SymgradError,
)
from symgrad.graph import Graph
from symgrad.op import Op


def test_incompatible_static_shapes_fail_at_build():
    g = Graph()
    a = g.variable((2, 3))
    b = g.variable((4,))
    with pytest.raises(ShapeIncompatible):
        a + b


def test_incompatible_fed_shapes_fail_at_eval():
    g = Graph()
    a = g.variable()
    b = g.variable()
    y = a * b
    with pytest.raises(ShapeIncompatible) as ei:
        g.eval(y, {a: np.ones((2, 3)), b: np.ones((4,))})
    err = ei.value
    assert err.node == y.id
    assert err.shapes == ((2, 3), (4,))


def test_broadcast_failure_reports_node():
    g = Graph()
    v = g.variable()
    b = g.broadcast_to_shape(v, (2, 4))
    with pytest.raises(BroadcastFailure) as ei:
        g.eval(b, {v: np.ones(3)})
    assert ei.value.node == b.id


def test_error_hierarchy():
    for cls in (ShapeIncompatible, GradientShapeInconsistent, BroadcastFailure):
        assert issubclass(cls, ShapeError)
        assert issubclass(cls, ValueError)
        assert issubclass(cls, SymgradError)
    assert issubclass(NumericalError, FloatingPointError)


def test_inner_node_id_is_kept():
    err = ShapeIncompatible("boom", shapes=[(1,), (2,)])
    err.with_node(3)
    err.with_node(7)
    assert err.node == 3
    assert str(err) == "boom (shapes: (1,), (2,)) [node 3]"


def test_unfed_variable():
    g = Graph()
    x = g.variable((2,))
    with pytest.raises(GraphError):
        g.eval(x * 2.0)


def test_feed_with_wrong_shape():
    g = Graph()
    x = g.variable((2,))
    with pytest.raises(GraphError):
        g.eval(x, {x: np.ones(3)})


def test_only_variables_can_be_fed():
    g = Graph()
    c = g.constant(1.0)
    with pytest.raises(GraphError):
        g.eval(c, {c: 2.0})


def test_tensors_from_another_graph():
    g1, g2 = Graph(), Graph()
    a = g1.variable((2,))
    b = g2.variable((2,))
    with pytest.raises(GraphError):
        a + b


class _BadGrad(Op):
    name = "bad_grad"

    def compute(self, ctx):
        ctx.append_output(ctx.input(0) * 1.0)

    def grad(self, ctx):
        ctx.set_input_grads([ctx.output_grad(), None])


def test_wrong_number_of_input_grads():
    g = Graph()
    x = g.variable((2,))
    y = g.build([x], _BadGrad(), shape=(2,))
    with pytest.raises(GraphError):
        g.grad(y.sum(), [x])


def test_check_numerics():
    g = Graph()
    x = g.variable((2,))
    y = 1.0 / x
    feeds = {x: np.array([0.0, 1.0])}

    with np.errstate(divide="ignore"):
        out = g.eval(y, feeds)
        assert np.isinf(out[0])

        with using_config(check_numerics=True):
            with pytest.raises(NumericalError):
                g.eval(y, feeds)


def main():
    test_incompatible_static_shapes_fail_at_build()
    test_incompatible_fed_shapes_fail_at_eval()
    test_broadcast_failure_reports_node()
    test_error_hierarchy()
    test_inner_node_id_is_kept()
    test_unfed_variable()
    test_feed_with_wrong_shape()
    test_only_variables_can_be_fed()
    test_tensors_from_another_graph()
    test_wrong_number_of_input_grads()
    test_check_numerics()
    print("[OK] shape errors are typed and carry node ids")


if __name__ == "__main__":
    main()
