class SymgradError(Exception):
    pass


class ShapeError(SymgradError, ValueError):
    """
    Base class for shape problems found while building or evaluating a graph.

    shapes: the offending shapes, in the order they were compared
    node:   id of the graph node being evaluated, filled in by the evaluator
    """

    def __init__(self, message, shapes=(), node=None):
        self.message = message
        self.shapes = tuple(tuple(int(d) for d in s) for s in shapes)
        self.node = node
        super().__init__(self._format())

    def _format(self):
        msg = self.message
        if self.shapes:
            msg += " (shapes: " + ", ".join(str(s) for s in self.shapes) + ")"
        if self.node is not None:
            msg += f" [node {self.node}]"
        return msg

    def with_node(self, node):
        # innermost node wins; outer frames must not overwrite it
        if self.node is None:
            self.node = node
            self.args = (self._format(),)
        return self


class ShapeIncompatible(ShapeError):
    pass


class GradientShapeInconsistent(ShapeError):
    pass


class BroadcastFailure(ShapeError):
    pass


class GraphError(SymgradError):
    pass


class NumericalError(SymgradError, FloatingPointError):
    pass
