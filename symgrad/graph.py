import logging
from dataclasses import dataclass
from functools import reduce
from typing import List, Optional, Tuple

import numpy as np

from . import basic_ops, binary_ops
from .config import get_config
from .device import get_xp, to_numpy
from .errors import GraphError, NumericalError, ShapeError
from .op import ComputeContext, GradientContext, Op
from .shapes import SHAPE_DTYPE
from .tensor import Tensor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _NodeRecord:
    op: Op
    inputs: Tuple[int, ...]
    shape: Optional[Tuple[int, ...]] = None
    name: Optional[str] = None


class Graph:
    """
    Arena of symbolic nodes. Nodes are appended, never changed, and only refer
    to nodes created before them, so ids are already a topological order.
    """

    def __init__(self, dtype=None, device=None):
        cfg = get_config()
        self.dtype = np.dtype(dtype or cfg.dtype)
        self.device = device or cfg.device
        self.xp = get_xp(self.device)
        self._nodes: List[_NodeRecord] = []
        self._tensors: List[Tensor] = []
        self._shape_nodes = {}

    def __len__(self):
        return len(self._nodes)

    def node(self, t) -> _NodeRecord:
        nid = t.id if isinstance(t, Tensor) else t
        return self._nodes[nid]

    def tensor(self, node_id) -> Tensor:
        return self._tensors[node_id]

    # ------------------------------------------------------------------
    # building
    # ------------------------------------------------------------------

    def build(self, inputs, op, shape=None, name=None) -> Tensor:
        """
        Append a node computing op over inputs.
        shape is the declared output shape: a tuple, or a shape tensor.
        """
        ids = tuple(self._check_input(x) for x in inputs)
        if shape is not None:
            static = self._resolve_shape(shape)
        else:
            static = op.infer_shape([self._nodes[i].shape for i in ids])

        nid = len(self._nodes)
        self._nodes.append(_NodeRecord(op=op, inputs=ids, shape=static, name=name))
        t = Tensor(self, nid)
        self._tensors.append(t)
        logger.debug("node %d: %s%s -> %s", nid, op.name, list(ids), static)
        return t

    def _check_input(self, x):
        if not isinstance(x, Tensor):
            raise GraphError(f"graph inputs must be Tensors, got {type(x).__name__}")
        if x.graph is not self:
            raise GraphError(f"tensor {x.id} belongs to a different graph")
        return x.id

    def _resolve_shape(self, shape):
        if isinstance(shape, Tensor):
            rec = self.node(shape)
            if basic_ops.is_shape_op(rec.op):
                return self._nodes[rec.inputs[0]].shape
            return basic_ops.constant_shape(rec.op)
        return tuple(int(d) for d in shape)

    def _as_tensor(self, x):
        if isinstance(x, Tensor):
            return x
        return self.constant(x)

    def _shape_tensor(self, shape):
        if isinstance(shape, Tensor):
            return shape
        return self.constant(np.asarray(tuple(shape), dtype=SHAPE_DTYPE), dtype=SHAPE_DTYPE)

    def variable(self, shape=None, name=None) -> Tensor:
        return self.build([], basic_ops.Variable(), shape=shape, name=name)

    def constant(self, value, dtype=None, name=None) -> Tensor:
        value = self.xp.asarray(value, dtype=dtype or self.dtype)
        return self.build([], basic_ops.Constant(value), shape=value.shape, name=name)

    def shape(self, x) -> Tensor:
        """Node evaluating to x's shape as a 1-D int64 array."""
        t = self._shape_nodes.get(x.id)
        if t is None:
            t = self.build([x], basic_ops.Shape())
            self._shape_nodes[x.id] = t
        return t

    def static_shape(self, x):
        return self.node(x).shape

    def add(self, a, b):
        return self.build([self._as_tensor(a), self._as_tensor(b)], binary_ops.Add())

    def sub(self, a, b):
        return self.build([self._as_tensor(a), self._as_tensor(b)], binary_ops.Sub())

    def mul(self, a, b):
        return self.build([self._as_tensor(a), self._as_tensor(b)], binary_ops.Mul())

    def div(self, a, b):
        return self.build([self._as_tensor(a), self._as_tensor(b)], binary_ops.Div())

    def neg(self, x):
        return self.build([x], basic_ops.Neg())

    def pow(self, x, p):
        return self.build([x], basic_ops.Pow(p))

    def sum(self, x):
        return self.build([x], basic_ops.Sum())

    def ones_like(self, x):
        return self.build([x], basic_ops.OnesLike())

    def zeros_like(self, x):
        return self.build([x], basic_ops.ZerosLike())

    def stop_gradient(self, x):
        return self.build([x], basic_ops.StopGradient())

    def reduce_to_shape(self, gy, shape):
        shape = self._shape_tensor(shape)
        return self.build([gy, shape], binary_ops.ReduceToShape(), shape=shape)

    def broadcast_to_shape(self, gy, shape):
        shape = self._shape_tensor(shape)
        return self.build([gy, shape], binary_ops.BroadcastToShape(), shape=shape)

    # ------------------------------------------------------------------
    # evaluation
    # ------------------------------------------------------------------

    def _ancestors(self, ids):
        seen = set()
        stack = list(ids)
        while stack:
            nid = stack.pop()
            if nid in seen:
                continue
            seen.add(nid)
            stack.extend(self._nodes[nid].inputs)
        return sorted(seen)

    def _feed_values(self, feeds):
        values = {}
        for t, v in (feeds or {}).items():
            self._check_input(t)
            rec = self.node(t)
            if not isinstance(rec.op, basic_ops.Variable):
                raise GraphError(f"only variables can be fed, node {t.id} is {rec.op.name}")
            arr = self.xp.asarray(v, dtype=self.dtype)
            if rec.shape is not None and tuple(arr.shape) != rec.shape:
                raise GraphError(
                    f"feed for node {t.id} has shape {tuple(arr.shape)}, expected {rec.shape}"
                )
            values[t.id] = arr
        return values

    def eval(self, targets, feeds=None):
        """
        Evaluate one tensor or a list of tensors.
        feeds: {variable tensor: array-like}
        """
        single = isinstance(targets, Tensor)
        targets = [targets] if single else list(targets)
        for t in targets:
            self._check_input(t)

        values = self._feed_values(feeds)
        check_numerics = get_config().check_numerics

        for nid in self._ancestors(t.id for t in targets):
            if nid in values:
                continue
            rec = self._nodes[nid]
            ctx = ComputeContext(nid, [values[i] for i in rec.inputs])
            try:
                rec.op.compute(ctx)
            except ShapeError as e:
                e.with_node(nid)
                raise
            if len(ctx.outputs) != 1:
                raise GraphError(f"{rec.op.name} node {nid} produced {len(ctx.outputs)} outputs")

            out = ctx.outputs[0]
            if check_numerics and out.dtype.kind == "f" and not bool(self.xp.all(self.xp.isfinite(out))):
                raise NumericalError(f"{rec.op.name} node {nid} produced NaN/Inf")
            values[nid] = out

        logger.debug("evaluated %d nodes for %d targets", len(values), len(targets))
        out = [values[t.id] for t in targets]
        return out[0] if single else out

    def eval_numpy(self, targets, feeds=None):
        ret = self.eval(targets, feeds)
        if isinstance(targets, Tensor):
            return to_numpy(ret)
        return [to_numpy(r) for r in ret]

    # ------------------------------------------------------------------
    # differentiation
    # ------------------------------------------------------------------

    def _accumulate(self, grads):
        return reduce(lambda a, b: self.add(a, b), grads)

    def grad(self, ys, xs, gys=None):
        """
        Build d(sum ys)/d(xs) as new nodes. Nothing is evaluated.

        gys seeds the output gradients, ones_like(y) by default. Returns a list
        with one gradient tensor per x (zeros_like(x) when x does not affect ys).
        """
        ys = [ys] if isinstance(ys, Tensor) else list(ys)
        xs = [xs] if isinstance(xs, Tensor) else list(xs)
        if gys is None:
            gys = [self.ones_like(y) for y in ys]
        else:
            gys = [gys] if isinstance(gys, Tensor) else list(gys)
        if len(gys) != len(ys):
            raise GraphError(f"got {len(gys)} output grads for {len(ys)} outputs")
        for t in ys + xs + gys:
            self._check_input(t)

        order = self._ancestors(y.id for y in ys)
        x_ids = {x.id for x in xs}

        # nodes that lie on some path from an x
        needed = set()
        for nid in order:
            if nid in x_ids or any(i in needed for i in self._nodes[nid].inputs):
                needed.add(nid)

        pending = {}
        for y, gy in zip(ys, gys):
            pending.setdefault(y.id, []).append(gy)

        built = len(self._nodes)
        for nid in reversed(order):
            if nid not in needed or nid not in pending:
                continue
            rec = self._nodes[nid]
            if not rec.inputs:
                continue

            gy = self._accumulate(pending[nid])
            pending[nid] = [gy]

            ctx = GradientContext(self, nid, gy)
            rec.op.grad(ctx)
            for i, g in zip(rec.inputs, ctx.input_grads):
                if g is None or i not in needed:
                    continue
                pending.setdefault(i, []).append(g)

        ret = []
        for x in xs:
            if x.id in pending:
                gx = self._accumulate(pending[x.id])
                pending[x.id] = [gx]
            else:
                gx = self.zeros_like(x)
            ret.append(gx)

        logger.debug("grad: %d nodes added for %d inputs", len(self._nodes) - built, len(xs))
        return ret
