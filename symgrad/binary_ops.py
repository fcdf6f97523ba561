"""
Elementwise binary arithmetic with broadcasting, and the two operators that
undo / redo broadcasting on gradients.

    ReduceToShape(gy, x_shape)       sums gy over the axes broadcasting created
    BroadcastToShape(gy, target)     re-broadcasts gy into target

Each is the other's gradient, so gradients of gradients stay well shaped.
"""
import operator

from .device import get_xp_from_array, same_backend
from .errors import BroadcastFailure, GradientShapeInconsistent
from .op import Op
from .shapes import as_shape, broadcast_shape, is_scalar_shape, num_elements


def binary_forward(x0, x1, fn, commutative=False):
    """
    fn(x0, x1) with broadcasting. Always returns a new array.

    A scalar operand is applied elementwise against the other operand without
    building a broadcast view. For commutative fn the operand with more
    elements goes on the left.
    """
    if not same_backend(x0, x1):
        raise ValueError("mixed numpy/cupy operands")
    xp = get_xp_from_array(x0)

    s0, s1 = tuple(x0.shape), tuple(x1.shape)
    broadcast_shape(s0, s1)

    x0_is_scalar = is_scalar_shape(s0)
    x1_is_scalar = is_scalar_shape(s1)

    if x0_is_scalar and not x1_is_scalar:
        ret = fn(x0[()], x1)
    elif x1_is_scalar and not x0_is_scalar:
        ret = fn(x0, x1[()])
    elif commutative and not x0_is_scalar and num_elements(s0) < num_elements(s1):
        ret = fn(x1, x0)
    else:
        ret = fn(x0, x1)

    # scalar (op) scalar comes back as a numpy scalar
    return xp.asarray(ret)


def add_forward(x0, x1):
    return binary_forward(x0, x1, operator.add, commutative=True)


def mul_forward(x0, x1):
    return binary_forward(x0, x1, operator.mul, commutative=True)


def sub_forward(x0, x1):
    return binary_forward(x0, x1, operator.sub)


def div_forward(x0, x1):
    return binary_forward(x0, x1, operator.truediv)


def reduce_to_shape(gy, x_shape):
    """
    Sum gy over the axes that broadcasting stretched so the result has shape
    exactly x_shape. Returns gy itself when nothing was broadcast.
    """
    xp = get_xp_from_array(gy)
    x_shape = tuple(x_shape)
    gy_shape = tuple(gy.shape)

    if gy_shape == x_shape:
        return gy

    # a scalar target compares as all-ones and is squashed to () at the end
    x_is_scalar = is_scalar_shape(x_shape)
    target = (1,) * len(gy_shape) if x_is_scalar else x_shape

    extra = len(gy_shape) - len(target)
    if extra < 0:
        raise GradientShapeInconsistent("gradient has fewer axes than its target",
                                        shapes=(x_shape, gy_shape))

    folded = gy
    owned = False
    if extra:
        # leading axes the target never had
        folded = folded.sum(axis=tuple(range(extra)))
        owned = True

    for axis, x_axis in enumerate(target):
        gy_axis = folded.shape[axis]
        if x_axis == gy_axis:
            continue
        if x_axis == 1:
            folded = folded.sum(axis=axis, keepdims=True)
            owned = True
        else:
            raise GradientShapeInconsistent("incorrect gradient shape",
                                            shapes=(x_shape, gy_shape))

    if x_is_scalar:
        folded = folded.reshape(())
    if not owned:
        folded = folded.copy()

    if tuple(folded.shape) != x_shape:
        raise GradientShapeInconsistent("reduced gradient does not match its target",
                                        shapes=(x_shape, tuple(folded.shape)))
    return xp.asarray(folded)


def broadcast_to_shape(gy, target_shape):
    """Materialise gy broadcast into target_shape as a new array."""
    xp = get_xp_from_array(gy)
    target_shape = tuple(target_shape)

    if tuple(gy.shape) == target_shape:
        return gy

    src = gy
    if is_scalar_shape(gy.shape):
        src = gy.reshape((1,) * len(target_shape))

    try:
        ret = xp.broadcast_to(src, target_shape)
    except ValueError as e:
        raise BroadcastFailure("cannot broadcast gradient",
                               shapes=(tuple(gy.shape), target_shape)) from e
    return ret.copy()


class ReduceToShape(Op):
    # Inputs: [gy, x_shape]
    name = "reduce_to_shape"

    def compute(self, ctx):
        gy = ctx.input(0)
        x_shape = as_shape(ctx.input(1))

        if tuple(gy.shape) == x_shape:
            # forward path didn't broadcast
            ctx.append_output_view(gy)
            return
        ctx.append_output(reduce_to_shape(gy, x_shape))

    def grad(self, ctx):
        g = ctx.graph()
        gy = ctx.input(0)
        ggx = g.broadcast_to_shape(ctx.output_grad(), g.shape(gy))
        ctx.set_input_grads([ggx, None])


class BroadcastToShape(Op):
    # Inputs: [gy, target_shape]
    name = "broadcast_to_shape"

    def compute(self, ctx):
        gy = ctx.input(0)
        target_shape = as_shape(ctx.input(1))

        if tuple(gy.shape) == target_shape:
            ctx.append_output_view(gy)
            return
        ctx.append_output(broadcast_to_shape(gy, target_shape))

    def grad(self, ctx):
        g = ctx.graph()
        gy = ctx.input(0)
        ggx = g.reduce_to_shape(ctx.output_grad(), g.shape(gy))
        ctx.set_input_grads([ggx, None])


class _BinaryOp(Op):
    forward = None

    def compute(self, ctx):
        ctx.append_output(type(self).forward(ctx.input(0), ctx.input(1)))

    def infer_shape(self, shapes):
        s0, s1 = shapes
        if s0 is None or s1 is None:
            return None
        return broadcast_shape(s0, s1)


def _preprocess_gy(g, gy0, gy1, x0, x1):
    # fold each operand's gradient back to that operand's own shape
    return (g.reduce_to_shape(gy0, g.shape(x0)),
            g.reduce_to_shape(gy1, g.shape(x1)))


class Add(_BinaryOp):
    name = "add"
    forward = staticmethod(add_forward)

    def grad(self, ctx):
        gy = ctx.output_grad()
        gx0, gx1 = _preprocess_gy(ctx.graph(), gy, gy, ctx.input(0), ctx.input(1))
        ctx.set_input_grads([gx0, gx1])


class Sub(_BinaryOp):
    name = "sub"
    forward = staticmethod(sub_forward)

    def grad(self, ctx):
        g = ctx.graph()
        gy = ctx.output_grad()
        gx0, gx1 = _preprocess_gy(g, gy, gy, ctx.input(0), ctx.input(1))
        ctx.set_input_grads([gx0, g.neg(gx1)])


class Mul(_BinaryOp):
    name = "mul"
    forward = staticmethod(mul_forward)

    def grad(self, ctx):
        g = ctx.graph()
        x0, x1 = ctx.input(0), ctx.input(1)
        gy = ctx.output_grad()
        gx0, gx1 = _preprocess_gy(g, gy * x1, gy * x0, x0, x1)
        ctx.set_input_grads([gx0, gx1])


class Div(_BinaryOp):
    name = "div"
    forward = staticmethod(div_forward)

    def grad(self, ctx):
        g = ctx.graph()
        x0, x1 = ctx.input(0), ctx.input(1)
        gy = ctx.output_grad()
        gx0, gx1 = _preprocess_gy(g, gy / x1, g.neg(x0) * g.pow(x1, -2) * gy, x0, x1)
        ctx.set_input_grads([gx0, gx1])
