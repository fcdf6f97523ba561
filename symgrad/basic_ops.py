from .device import get_xp_from_array, readonly_view, to_numpy
from .errors import GraphError
from .op import Op
from .shapes import SHAPE_DTYPE


class Variable(Op):
    """Placeholder fed at evaluation time."""
    name = "variable"

    def compute(self, ctx):
        raise GraphError(f"variable node {ctx.node} was not fed")

    def grad(self, ctx):
        ctx.set_input_grads([])


class Constant(Op):
    name = "constant"

    def __init__(self, value):
        self.value = value

    def compute(self, ctx):
        ctx.append_output_view(readonly_view(self.value))

    def grad(self, ctx):
        ctx.set_input_grads([])

    def __repr__(self):
        return f"Constant(shape={tuple(self.value.shape)})"


class Shape(Op):
    # the shape of a scalar is the empty descriptor, shape (0,)
    name = "shape"

    def compute(self, ctx):
        x = ctx.input(0)
        xp = get_xp_from_array(x)
        ctx.append_output(xp.asarray(tuple(x.shape), dtype=SHAPE_DTYPE))

    def grad(self, ctx):
        ctx.set_input_grads([None])

    def infer_shape(self, shapes):
        s, = shapes
        return None if s is None else (len(s),)


class _Unary(Op):
    def infer_shape(self, shapes):
        return shapes[0]


class Neg(_Unary):
    name = "neg"

    def compute(self, ctx):
        x = ctx.input(0)
        ctx.append_output(get_xp_from_array(x).asarray(-x))

    def grad(self, ctx):
        ctx.set_input_grads([ctx.graph().neg(ctx.output_grad())])


class Pow(_Unary):
    name = "pow"

    def __init__(self, p):
        self.p = p

    def compute(self, ctx):
        x = ctx.input(0)
        xp = get_xp_from_array(x)
        ctx.append_output(xp.asarray(xp.power(x, self.p)))

    def grad(self, ctx):
        g = ctx.graph()
        x = ctx.input(0)
        gx = ctx.output_grad() * (g.pow(x, self.p - 1) * self.p)
        ctx.set_input_grads([gx])

    def __repr__(self):
        return f"Pow({self.p})"


class OnesLike(_Unary):
    name = "ones_like"

    def compute(self, ctx):
        x = ctx.input(0)
        ctx.append_output(get_xp_from_array(x).ones_like(x))

    def grad(self, ctx):
        ctx.set_input_grads([None])


class ZerosLike(_Unary):
    name = "zeros_like"

    def compute(self, ctx):
        x = ctx.input(0)
        ctx.append_output(get_xp_from_array(x).zeros_like(x))

    def grad(self, ctx):
        ctx.set_input_grads([None])


class StopGradient(_Unary):
    name = "stop_gradient"

    def compute(self, ctx):
        ctx.append_output_view(ctx.input(0))

    def grad(self, ctx):
        ctx.append_input_grad(None)


class Sum(Op):
    """Sum of every element, shape ()."""
    name = "sum"

    def compute(self, ctx):
        x = ctx.input(0)
        xp = get_xp_from_array(x)
        ctx.append_output(xp.asarray(x.sum()))

    def grad(self, ctx):
        g = ctx.graph()
        x = ctx.input(0)
        ctx.set_input_grads([g.broadcast_to_shape(ctx.output_grad(), g.shape(x))])

    def infer_shape(self, shapes):
        return ()


def is_shape_op(op):
    return isinstance(op, Shape)


def constant_shape(op):
    if isinstance(op, Constant):
        return tuple(int(d) for d in to_numpy(op.value).reshape(-1))
    return None
