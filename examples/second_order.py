# examples/second_order.py
import numpy as np
from symgrad.graph import Graph
from symgrad.viz import save_dot

def main():
    g = Graph()
    w = g.variable((4, 3), name="w")
    s = g.variable((), name="s")

    # y = sum(w / s): s is broadcast over every element of w
    y = (w / s).sum()

    ds, = g.grad(y, [s])        # -sum(w) / s^2
    dds, = g.grad(ds, [s])      # 2 * sum(w) / s^3

    W = np.random.default_rng(0).standard_normal((4, 3))
    S = 1.5
    ds_val, dds_val = g.eval([ds, dds], {w: W, s: S})

    print("dy/ds   :", float(ds_val), "expected", -W.sum() / S ** 2)
    print("d2y/ds2 :", float(dds_val), "expected", 2 * W.sum() / S ** 3)

    save_dot(dds, "second_order.dot", mode="prune_trivial")
    print("Wrote second_order.dot. Render with: dot -Tpng second_order.dot -o second_order.png")

if __name__ == "__main__":
    main()
