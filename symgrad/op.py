from .device import readonly_view
from .errors import GraphError


class Op:
    """
    An operator owns two steps:

      compute(ctx): numeric. Reads concrete inputs with ctx.input(i) and
                    deposits exactly one result with ctx.append_output(...)
                    or ctx.append_output_view(...).
      grad(ctx):    symbolic. Reads ctx.input(i) / ctx.output_grad() as graph
                    nodes and registers one gradient node (or None) per input.

    infer_shape gets the static input shapes (None where unknown) and may
    return the static output shape.
    """
    name = "op"

    def compute(self, ctx):
        raise NotImplementedError

    def grad(self, ctx):
        raise NotImplementedError

    def infer_shape(self, shapes):
        return None

    def __repr__(self):
        return f"{type(self).__name__}()"


class ComputeContext:
    def __init__(self, node, inputs):
        self.node = node
        self._inputs = inputs
        self.outputs = []

    def input(self, i):
        return readonly_view(self._inputs[i])

    @property
    def num_inputs(self):
        return len(self._inputs)

    def append_output(self, array):
        # ownership moves to the caller
        self.outputs.append(array)

    def append_output_view(self, view):
        self.outputs.append(view)


class GradientContext:
    def __init__(self, graph, node, output_grad):
        self._graph = graph
        self._node = node
        self._output_grad = output_grad
        self._input_grads = None

    def input(self, i):
        return self._graph.tensor(self._graph.node(self._node).inputs[i])

    def output(self):
        return self._graph.tensor(self._node)

    def output_grad(self):
        return self._output_grad

    def graph(self):
        return self._graph

    @property
    def num_inputs(self):
        return len(self._graph.node(self._node).inputs)

    def set_input_grads(self, grads):
        if self._input_grads is not None:
            raise GraphError(f"input grads already set for node {self._node}")
        grads = list(grads)
        if len(grads) != self.num_inputs:
            raise GraphError(
                f"node {self._node} has {self.num_inputs} inputs, got {len(grads)} grads"
            )
        self._input_grads = grads

    def append_input_grad(self, grad):
        if self._input_grads is None:
            self._input_grads = []
        if len(self._input_grads) >= self.num_inputs:
            raise GraphError(f"too many input grads for node {self._node}")
        self._input_grads.append(grad)

    @property
    def input_grads(self):
        grads = self._input_grads if self._input_grads is not None else []
        if len(grads) != self.num_inputs:
            raise GraphError(
                f"node {self._node}: expected {self.num_inputs} input grads, got {len(grads)}"
            )
        return grads
