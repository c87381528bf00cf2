"""
Shared dependencies and helpers for tool handlers.

BridgeContext holds the clients built once at startup; ContextHelper wraps it
with convenient accessors and the guarded way of calling blocking clients
from async handlers.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple, Type

from ..config import BridgeSettings
from ..errors import BridgeError, UpstreamUnavailableError

logger = logging.getLogger(__name__)


@dataclass
class BridgeContext:
    """Clients and settings shared by all tool handlers."""

    settings: BridgeSettings
    backend: Any
    embedder: Any = None
    reranker: Any = None
    storage: Any = None


class ContextHelper:
    """
    Helper class for convenient access to BridgeContext data.
    """

    def __init__(self, context: BridgeContext):
        self.context = context

    @property
    def settings(self) -> BridgeSettings:
        return self.context.settings

    @property
    def backend(self):
        return self.context.backend

    @property
    def embedder(self):
        return self.context.embedder

    @property
    def reranker(self):
        return self.context.reranker

    @property
    def storage(self):
        return self.context.storage

    async def call_upstream(
        self,
        service: str,
        func: Callable[..., Any],
        *args: Any,
        passthrough: Tuple[Type[BaseException], ...] = (),
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> Any:
        """
        Run a blocking client call in a worker thread with a timeout.

        Args:
            service: Name used in error messages ("database", "embeddings", ...)
            func: Blocking callable
            passthrough: Exception types re-raised unchanged (e.g. RecordNotFoundError)
            timeout: Seconds; defaults to settings.upstream_timeout

        Raises:
            UpstreamUnavailableError: On timeout or any other client failure
        """
        timeout = timeout or self.settings.upstream_timeout
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args, **kwargs), timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"{service} call timed out after {timeout:g}s")
            raise UpstreamUnavailableError(service, f"timed out after {timeout:g}s") from e
        except passthrough:
            raise
        except BridgeError:
            raise
        except Exception as e:
            logger.error(f"{service} call failed: {e}")
            raise UpstreamUnavailableError(service, str(e)) from e
