"""
=============================================================================
BASE MIDDLEWARE INTERFACE
=============================================================================

Defines the middleware protocol and the pipeline that chains middleware
around the dispatcher (Chain of Responsibility).

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     COMMAND FLOW THROUGH THE CHAIN                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Command ─────────────────────────────────────────►                 │
    │                                                                      │
    │   ┌──────────┐    ┌──────────┐    ┌────────────┐                    │
    │   │ Logging  │───►│   ...    │───►│ Dispatcher │                    │
    │   │    MW    │    │    MW    │    │            │                    │
    │   └──────────┘    └──────────┘    └────────────┘                    │
    │                                                                      │
    │   ◄─────────────────────────────────────────────── Frame            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A middleware may short-circuit by returning a Frame without calling next
(for example an Error frame), or post-process the reply on the way out.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional
import logging

from ..protocol.command import Command
from ..protocol.frames import Frame


logger = logging.getLogger(__name__)


NextHandler = Callable[[Command], Frame]


class Middleware(ABC):
    """
    Abstract base class for middleware.

    Every middleware implements:

        def __call__(self, command: Command, next: NextHandler) -> Frame

    and MUST call next(command) unless it is deliberately short-circuiting.

        class DenyFlush(Middleware):
            def __call__(self, command, next):
                if command.name == "FLUSHALL":
                    return Error("ERR FLUSHALL is disabled")
                return next(command)
    """

    @abstractmethod
    def __call__(self, command: Command, next: NextHandler) -> Frame:
        pass

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Chains middleware together around a final handler.

    First added = outermost:

        pipeline.add(CommandLoggingMiddleware())   # sees every command
        pipeline.add(OtherMiddleware())            # closest to dispatcher

        handler = pipeline.wrap(dispatcher.dispatch)
        reply = handler(command)
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        """Add several middleware in one call."""
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Wrap a handler with all middleware in the pipeline.

        Wrapping happens in REVERSE order so the first-added middleware
        ends up outermost:

            [MW1, MW2] + handler  →  MW1 → MW2 → handler
        """
        current = handler

        for middleware in reversed(self._middleware):
            current = self._create_wrapped_handler(middleware, current)

        return current

    def _create_wrapped_handler(self, middleware: Middleware, next_handler: NextHandler) -> NextHandler:
        def wrapped(command: Command) -> Frame:
            return middleware(command, next_handler)

        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)


class FunctionMiddleware(Middleware):
    """
    Wraps a plain function as middleware.

        def deny_flush(command, next):
            ...

        pipeline.add(FunctionMiddleware(deny_flush))
    """

    def __init__(
        self,
        func: Callable[[Command, NextHandler], Frame],
        name: Optional[str] = None,
    ):
        self._func = func
        self._name = name or func.__name__

    def __call__(self, command: Command, next: NextHandler) -> Frame:
        return self._func(command, next)

    @property
    def name(self) -> str:
        return self._name


def function_middleware(func: Callable[[Command, NextHandler], Frame]) -> FunctionMiddleware:
    """Decorator form of FunctionMiddleware."""
    return FunctionMiddleware(func)
