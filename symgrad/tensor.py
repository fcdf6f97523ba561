#tensor is a handle to a node in a graph: no data, just (graph, id)
class Tensor:
    # let numpy defer to our reflected operators (np_array + tensor)
    __array_ufunc__ = None

    def __init__(self, graph, node_id):
        self.graph = graph
        self.id = node_id

    @property
    def op(self):
        return self.graph.node(self).op

    @property
    def inputs(self):
        return tuple(self.graph.tensor(i) for i in self.graph.node(self).inputs)

    @property
    def name(self):
        return self.graph.node(self).name

    @property
    def shape(self):
        # static shape, None when it is only known at evaluation time
        return self.graph.node(self).shape

    def eval(self, feeds=None):
        return self.graph.eval(self, feeds)

    def sum(self):
        return self.graph.sum(self)

    def __add__(self, other):
        return self.graph.add(self, other)

    def __radd__(self, other):
        return self.graph.add(other, self)

    def __sub__(self, other):
        return self.graph.sub(self, other)

    def __rsub__(self, other):
        return self.graph.sub(other, self)

    def __mul__(self, other):
        return self.graph.mul(self, other)

    def __rmul__(self, other):
        return self.graph.mul(other, self)

    def __truediv__(self, other):
        return self.graph.div(self, other)

    def __rtruediv__(self, other):
        return self.graph.div(other, self)

    def __neg__(self):
        return self.graph.neg(self)

    def __pow__(self, p):
        return self.graph.pow(self, p)

    def __repr__(self):
        label = f", name={self.name!r}" if self.name else ""
        return f"Tensor(id={self.id}, op={self.op.name}, shape={self.shape}{label})"
