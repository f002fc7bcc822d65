import argparse
import os
from typing import Literal, Mapping, Optional, Sequence

from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "AVLKV_"


class StoreConfig(BaseModel):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    input_path: Optional[str] = Field(None, description="Read commands from this file instead of stdin")
    preload_path: Optional[str] = Field(None, description="Snapshot loaded before the first command")

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper(cls, v):
        return v.upper() if isinstance(v, str) else v


def _parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="avl-kv",
        description="Case-insensitive key-value store driven by commands on stdin.",
    )
    p.add_argument("--log-level", dest="log_level", help="logging level (default WARNING)")
    p.add_argument("--input", dest="input_path", help="command file to read instead of stdin")
    p.add_argument("--preload", dest="preload_path", help="snapshot file to load at startup")
    return p


def load_config(argv: Optional[Sequence[str]] = None,
                environ: Optional[Mapping[str, str]] = None) -> StoreConfig:
    """Environment first (AVLKV_LOG_LEVEL, AVLKV_INPUT, AVLKV_PRELOAD), flags override."""
    env = os.environ if environ is None else environ
    values = {
        "log_level": env.get(ENV_PREFIX + "LOG_LEVEL"),
        "input_path": env.get(ENV_PREFIX + "INPUT"),
        "preload_path": env.get(ENV_PREFIX + "PRELOAD"),
    }
    args = _parser().parse_args(argv)
    for name, v in vars(args).items():
        if v is not None:
            values[name] = v
    return StoreConfig(**{k: v for k, v in values.items() if v is not None})
