"""
Shape helpers shared by the forward evaluator and the gradient reducer/expander.

A shape is a tuple of non-negative ints; () is a scalar. Inside a graph a shape
travels as a 1-D int64 array (a "shape descriptor"), so the descriptor of a
scalar is the empty array of shape (0,).
"""
import numpy as np

from .device import to_numpy
from .errors import ShapeIncompatible

SHAPE_DTYPE = np.int64


def as_shape(descriptor):
    """Shape descriptor array (or any int sequence) -> tuple of ints."""
    arr = to_numpy(descriptor).reshape(-1)
    return tuple(int(d) for d in arr)


def shape_descriptor(shape, xp=np):
    return xp.asarray(tuple(shape), dtype=SHAPE_DTYPE)


def is_scalar_shape(shape):
    return len(shape) == 0


def num_elements(shape):
    n = 1
    for d in shape:
        n *= int(d)
    return n


def broadcast_shape(s0, s1):
    """
    Standard broadcast of two shapes: trailing dims are aligned, a size-1 dim
    stretches, missing leading dims count as size 1.
    """
    s0, s1 = tuple(s0), tuple(s1)
    ndim = max(len(s0), len(s1))
    p0 = (1,) * (ndim - len(s0)) + s0
    p1 = (1,) * (ndim - len(s1)) + s1

    out = []
    for a, b in zip(p0, p1):
        if a == b or b == 1:
            out.append(a)
        elif a == 1:
            out.append(b)
        else:
            raise ShapeIncompatible("shapes cannot be broadcast together", shapes=(s0, s1))
    return tuple(out)
