import numpy as np
from symgrad.graph import Graph

g = Graph()
x = g.variable((2, 3), name="x")
b = g.variable((3,), name="b")

y = x + b          # b broadcast to (2,3)
gx, gb = g.grad(y, [x, b])

feeds = {x: np.ones((2, 3)), b: np.ones((3,))}
y_val, gx_val, gb_val = g.eval([y, gx, gb], feeds)

print("y:", y_val)                           # all 2.0
print("x.grad unique:", np.unique(gx_val))   # should be [1.]
print("b.grad:", gb_val)                     # should be [2. 2. 2.]
