"""
=============================================================================
MIDDLEWARE FRAMEWORK
=============================================================================

Middleware is code that runs BETWEEN decoding a command and the dispatcher
executing it. The server wraps the dispatcher once at startup:

    handler = pipeline.wrap(dispatcher.dispatch)

and every connection thread calls that handler for each command.

    base.py      Middleware ABC, MiddlewarePipeline, FunctionMiddleware
    logging.py   CommandLoggingMiddleware (per-command log records)

=============================================================================
"""

from .base import (
    Middleware,
    MiddlewarePipeline,
    NextHandler,
    FunctionMiddleware,
    function_middleware,
)
from .logging import CommandLoggingMiddleware, CommandLog

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "FunctionMiddleware",
    "function_middleware",
    "CommandLoggingMiddleware",
    "CommandLog",
]
