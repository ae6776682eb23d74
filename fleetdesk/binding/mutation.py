from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Sequence

from fleetdesk.binding.query_client import QueryClient
from fleetdesk.core.errors import Result, ServiceError
from fleetdesk.core.logging_config import get_logger

logger = get_logger(__name__)


class MutationStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


class Mutation:
    """
    A create/update/delete call with its own state, independent of any fetch.

    Each invocation resets the state to ``pending``; when it settles successfully the
    entity types in ``invalidates`` are marked stale. Failures come back as a ``Result``
    and are kept on ``error``.
    """

    def __init__(
        self,
        client: QueryClient,
        fn: Callable[..., Awaitable[Result]],
        invalidates: Sequence[str],
        name: Optional[str] = None,
    ):
        self.client = client
        self.fn = fn
        self.invalidates = tuple(invalidates)
        self.name = name or getattr(fn, "__name__", "mutation")
        self.status = MutationStatus.IDLE
        self.data: Any = None
        self.error: Optional[ServiceError] = None

    @property
    def is_pending(self) -> bool:
        return self.status is MutationStatus.PENDING

    async def __call__(self, *args: Any, **kwargs: Any) -> Result:
        self.status = MutationStatus.PENDING
        self.data = None
        self.error = None

        try:
            result = await self.fn(*args, **kwargs)
        except ServiceError as exc:
            result = Result.failure(exc)
        except Exception as exc:
            logger.exception(f"[Mutation] {self.name} raised")
            result = Result.failure(ServiceError.unknown(str(exc)))

        if result.ok:
            self.status = MutationStatus.SUCCESS
            self.data = result.data
            self.client.invalidate(*self.invalidates)
        else:
            self.status = MutationStatus.ERROR
            self.error = result.error
            logger.debug(f"[Mutation] {self.name} failed: {result.error.kind.value} - {result.error.message}")
        return result

    def reset(self) -> None:
        self.status = MutationStatus.IDLE
        self.data = None
        self.error = None

    def __repr__(self) -> str:
        return f"Mutation({self.name!r}, status={self.status.value!r})"
