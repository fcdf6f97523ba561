import numpy as np

try:
    import cupy as cp
except Exception:
    cp = None

def get_xp_from_array(x):
    # works for numpy and cuda ndarrays
    mod = type(x).__module__.split(".")[0]
    if mod == "cupy":
        return cp
    return np

def get_xp(device: str):
    if device in ("cpu", "np", "numpy"):
        return np
    if device in ("gpu", "cuda", "cupy"):
        if cp is None:
            raise ImportError("cupy not installed")
        return cp
    raise ValueError(f"unknown device: {device}")

def to_numpy(x):
    # converting for comparing or printing
    if cp is not None and isinstance(x, cp.ndarray):
        return cp.asnumpy(x)
    return np.asarray(x)

def readonly_view(x):
    """
    Borrowed, read-only view of x. Writing through it raises.
    cupy has no writeable flag, so cupy arrays are handed out as views only.
    """
    v = x.view()
    if isinstance(v, np.ndarray):
        v.flags.writeable = False
    return v

def same_backend(a, b):
    return get_xp_from_array(a) is get_xp_from_array(b)
