import numpy as np

from .device import to_numpy


def rel_error(a, b, eps=1e-12):
    a, b = to_numpy(a), to_numpy(b)
    return float(np.max(np.abs(a - b) / np.maximum(eps, np.abs(a) + np.abs(b))))


def numeric_grad(compute_loss, x, eps=1e-6):
    """
    Central differences of compute_loss() w.r.t. every element of x.
    x is perturbed in place and restored.
    """
    g = np.zeros_like(x, dtype=float)

    it = np.nditer(x, flags=['multi_index'], op_flags=['readwrite'])
    while not it.finished:
        idx = it.multi_index
        old = x[idx]

        x[idx] = old + eps
        L_pos = float(compute_loss())

        x[idx] = old - eps
        L_neg = float(compute_loss())

        x[idx] = old
        g[idx] = (L_pos - L_neg) / (2 * eps)

        it.iternext()

    return g


def gradcheck(graph, loss, variables, feeds, eps=1e-6):
    """
    Compare graph.grad(loss, variables) with finite differences.
    loss must be a scalar tensor; feeds must hold numpy float64 arrays for
    every variable. Returns the relative error per variable.
    """
    feeds = {k: np.array(to_numpy(v), dtype=np.float64) for k, v in feeds.items()}
    grads = graph.grad(loss, variables)
    autos = graph.eval_numpy(grads, feeds)

    errs = []
    for v, g_auto in zip(variables, autos):
        def compute_loss():
            return graph.eval_numpy(loss, feeds)

        g_num = numeric_grad(compute_loss, feeds[v], eps=eps)
        errs.append(rel_error(g_auto, g_num))
    return errs
