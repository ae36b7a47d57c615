"""One-shot availability handshake for the store client.

The client can be built out of band (for example on a worker thread while a
UI comes up). Callers ask the gate for it and wait at most ``timeout``
seconds; a timeout or a failed initializer surfaces as
:class:`ClientInitializationError` instead of a hang.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Callable, Generic, Optional, TypeVar

from supanotes.exceptions import ClientInitializationError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class ClientGate(Generic[T]):
    def __init__(self, *, timeout: float = 2.0):
        self._future: "Future[T]" = Future()
        self._timeout = timeout

    @classmethod
    def ready(cls, client: T, *, timeout: float = 2.0) -> "ClientGate[T]":
        gate: ClientGate[T] = cls(timeout=timeout)
        gate.resolve(client)
        return gate

    @classmethod
    def start(cls, factory: Callable[[], T], *, timeout: float = 2.0) -> "ClientGate[T]":
        """Run ``factory`` on a background thread and resolve with its result."""
        gate: ClientGate[T] = cls(timeout=timeout)
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="supanotes-init")

        def _run() -> None:
            try:
                gate.resolve(factory())
            except Exception as exc:
                LOGGER.error("Store client initialization failed: %s", exc)
                gate.fail(exc)

        executor.submit(_run)
        executor.shutdown(wait=False)
        return gate

    def resolve(self, client: T) -> None:
        if self._future.done():
            raise RuntimeError("Client gate already settled")
        self._future.set_result(client)
        LOGGER.info("Store client ready")

    def fail(self, error: BaseException) -> None:
        if self._future.done():
            raise RuntimeError("Client gate already settled")
        self._future.set_exception(error)

    @property
    def is_ready(self) -> bool:
        return self._future.done() and self._future.exception() is None

    def wait(self, timeout: Optional[float] = None) -> T:
        limit = self._timeout if timeout is None else timeout
        try:
            return self._future.result(timeout=limit)
        except FutureTimeout as exc:
            LOGGER.error("Store client not ready after %.1fs", limit)
            raise ClientInitializationError(
                f"Backend client did not initialize within {limit:.1f}s"
            ) from exc
        except ClientInitializationError:
            raise
        except Exception as exc:
            raise ClientInitializationError(f"Backend client failed to initialize: {exc}") from exc
