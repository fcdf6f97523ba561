import os
from contextlib import contextmanager
from dataclasses import dataclass, asdict, replace

_TRUE = ("1", "true", "yes", "on")


@dataclass
class Config:
    dtype: str = "float64"
    device: str = "cpu"
    # raise NumericalError when an evaluated node holds NaN/Inf
    check_numerics: bool = False

    @classmethod
    def from_env(cls, environ=None):
        env = os.environ if environ is None else environ
        cfg = cls()
        if env.get("SYMGRAD_DTYPE"):
            cfg.dtype = env["SYMGRAD_DTYPE"]
        if env.get("SYMGRAD_DEVICE"):
            cfg.device = env["SYMGRAD_DEVICE"]
        if env.get("SYMGRAD_CHECK_NUMERICS"):
            cfg.check_numerics = env["SYMGRAD_CHECK_NUMERICS"].strip().lower() in _TRUE
        return cfg


_config = Config.from_env()


def get_config() -> Config:
    return _config


def set_config(**kwargs) -> Config:
    global _config
    known = asdict(_config)
    for k in kwargs:
        if k not in known:
            raise ValueError(f"unknown config option: {k}")
    _config = replace(_config, **kwargs)
    return _config


@contextmanager
def using_config(**kwargs):
    global _config
    prev = _config
    set_config(**kwargs)
    try:
        yield _config
    finally:
        _config = prev
