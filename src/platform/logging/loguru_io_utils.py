"""Helpers shared by the LoguruIO decorator: masking, truncation, call-chain bookkeeping."""

import inspect
import time
from typing import Any, Callable

from src.platform.logging.loguru_io_config import (
    SENSITIVE_KEYWORDS,
    call_depth_var,
    chain_start_time_var,
)


MAX_CONTENT_LENGTH = 500
MASK = '*****'


def build_call_target_func_path(func: Callable[..., Any]) -> str:
    module = func.__module__.removeprefix('src.')
    return f'{module}:{func.__qualname__}'


def get_chain_start_time() -> str:
    """Elapsed time since the outermost @Logger.io call of this chain started."""
    if call_depth_var.get() <= 1 or not chain_start_time_var.get():
        chain_start_time_var.set(time.perf_counter())
        return '0.000ms'
    elapsed = (time.perf_counter() - chain_start_time_var.get()) * 1000
    return f'{elapsed:.3f}ms'


def reset_call_depth() -> None:
    depth = call_depth_var.get() - 1
    call_depth_var.set(max(depth, 0))
    if depth <= 0:
        chain_start_time_var.set(0)


def should_mask_keyword(key: Any, value: Any) -> Any:
    if isinstance(key, str) and any(word in key.lower() for word in SENSITIVE_KEYWORDS):
        return MASK
    return value


def mask_sensitive(data: Any) -> Any:
    if isinstance(data, str) and data.lower().startswith('bearer '):
        return f'Bearer {MASK}'
    return data


def truncate_content(data: Any) -> Any:
    text = data if isinstance(data, str) else repr(data)
    if len(text) <= MAX_CONTENT_LENGTH:
        return data
    return f'{text[:MAX_CONTENT_LENGTH]}...(truncated {len(text) - MAX_CONTENT_LENGTH} chars)'


def normalize_args_kwargs(
    func: Callable[..., Any], *args: Any, **kwargs: Any
) -> tuple[tuple[Any, ...], dict[str, Any]]:
    """Drop kwargs the wrapped callable cannot accept (e.g. FastAPI-injected extras)."""
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return args, kwargs
    if any(p.kind is inspect.Parameter.VAR_KEYWORD for p in signature.parameters.values()):
        return args, kwargs
    accepted = {k: v for k, v in kwargs.items() if k in signature.parameters}
    return args, accepted
