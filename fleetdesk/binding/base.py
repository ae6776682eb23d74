import functools
from typing import Any, Awaitable, Callable, Mapping, Optional, Tuple

from fleetdesk.binding.mutation import Mutation
from fleetdesk.binding.query_client import QueryClient, QueryEntry, QueryKey, freeze_params, merge_entities
from fleetdesk.core.context import SessionContext
from fleetdesk.core.errors import Result
from fleetdesk.platform.query import normalize_filters
from fleetdesk.services.base import BaseService

COMPANY_STATS = "company_stats"


class EntityBinding:
    """
    Cached reads and invalidating mutations for one entity type, bound to a caller.

    Fetches only reach the platform once the caller's tenant is known; without one,
    lists come back empty and single reads come back as ``None``.
    """
    entity: str
    # other entity types whose cached reads a mutation here makes outdated
    related: Tuple[str, ...] = ()

    def __init__(self, service: BaseService, client: QueryClient, ctx: SessionContext):
        self.service = service
        self.client = client
        self.ctx = ctx

        self.create = self.mutation(service.create)
        self.update = self.mutation(service.update)
        self.delete = self.mutation(service.delete)

    @property
    def enabled(self) -> bool:
        return self.ctx.has_tenant

    def key(self, scope: str = "list", *, entity: Optional[str] = None, **params: Any) -> QueryKey:
        return QueryKey.build(entity or self.entity, self.ctx.tenant_id, scope, **freeze_params(params))

    def mutation(self, fn: Callable[..., Awaitable[Result]], *extra: str) -> Mutation:
        """Wrap ``fn(ctx, ...)`` as a mutation invalidating this entity, its related ones and ``extra``."""
        return Mutation(
            self.client,
            functools.partial(fn, self.ctx),
            merge_entities((self.entity,), self.related, extra),
            name=f"{self.entity}.{fn.__name__}",
        )

    async def query(
        self,
        key: QueryKey,
        loader: Callable[[], Awaitable[Result]],
        *,
        empty: Any = None,
        force: bool = False,
    ) -> Result:
        if not self.enabled:
            return Result.success(empty)
        return await self.client.fetch(key, loader, force=force)

    def list_key(self, filters: Optional[Mapping[str, Any]] = None) -> QueryKey:
        return self.key("list", filters=normalize_filters(filters))

    async def list(self, filters: Optional[Mapping[str, Any]] = None, *, force: bool = False) -> Result:
        return await self.query(
            self.list_key(filters),
            lambda: self.service.get_all(self.ctx, filters),
            empty=[],
            force=force,
        )

    async def get(self, id: str, *, force: bool = False) -> Result:
        return await self.query(
            self.key("detail", id=id),
            lambda: self.service.get_by_id(self.ctx, id),
            empty=None,
            force=force,
        )

    async def refetch(self, filters: Optional[Mapping[str, Any]] = None) -> Result:
        return await self.list(filters, force=True)

    def state(self, key: QueryKey) -> QueryEntry:
        return self.client.entry(key)

    def list_state(self, filters: Optional[Mapping[str, Any]] = None) -> QueryEntry:
        return self.state(self.list_key(filters))
