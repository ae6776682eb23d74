from typing import Any, Callable, Dict, Generic, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from fleetdesk.core.context import SessionContext
from fleetdesk.core.errors import Result, ServiceError
from fleetdesk.core.logging_config import get_logger
from fleetdesk.platform.base import TableGateway
from fleetdesk.platform.query import TableQuery
from fleetdesk.schemas.base import SERVER_ASSIGNED_FIELDS

logger = get_logger(__name__)

CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)
ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)

Payload = Union[BaseModel, Mapping[str, Any]]


def validation_failure(exc: ValidationError) -> Result:
    """Turn a pydantic ValidationError into a ``validationError`` result."""
    errors = exc.errors(include_url=False, include_context=False)
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = f"{location}: {first.get('msg')}" if location else str(first.get("msg", "Invalid payload"))
    return Result.failure(ServiceError.validation(message, details=errors))


class BaseService(Generic[CreateSchemaType, UpdateSchemaType, ResponseSchemaType]):
    """
    Stateless table access for one entity.

    Every operation takes the caller's ``SessionContext`` and returns a ``Result``;
    failures reported by the platform come back as values, never as exceptions.
    Reads on tenant-scoped tables are always narrowed to ``ctx.tenant_id``.
    """
    table: str
    create_schema: Type[CreateSchemaType]
    update_schema: Type[UpdateSchemaType]
    response_schema: Type[ResponseSchemaType]
    tenant_scoped: bool = True
    # never written through update()
    protected_fields = SERVER_ASSIGNED_FIELDS | {"company_id"}

    def __init__(self, tables: TableGateway):
        self.tables = tables

    # ------------------------------------------------------------------ helpers

    def query(self, ctx: SessionContext, table: Optional[str] = None) -> TableQuery:
        """Base query for ``table`` narrowed to the caller's tenant."""
        query = TableQuery(table or self.table)
        if self.tenant_scoped and ctx.tenant_id:
            query = query.where(company_id=ctx.tenant_id)
        return query

    def parse(self, row: Mapping[str, Any]) -> ResponseSchemaType:
        return self.response_schema.model_validate(row)

    def parse_many(self, rows: List[Mapping[str, Any]]) -> List[ResponseSchemaType]:
        return [self.parse(row) for row in rows or []]

    def finish(self, operation: str, result: Result, parser: Optional[Callable[[Any], Any]] = None) -> Result:
        """Log a failed platform call or parse the rows of a successful one."""
        if not result.ok:
            error = result.error
            logger.error(
                f"[{type(self).__name__}.{operation}] {self.table}: {error.kind.value} - {error.message}"
            )
            return result
        if parser is None:
            return result
        try:
            return result.map(parser)
        except ValidationError as exc:
            logger.error(f"[{type(self).__name__}.{operation}] {self.table}: unexpected row shape - {exc}")
            return Result.failure(ServiceError.unknown(f"Unexpected {self.table} row shape", details=str(exc)))

    @staticmethod
    def dump(payload: Payload, schema: Type[BaseModel], *, partial: bool) -> Dict[str, Any]:
        """Validated column values of ``payload``; raises ``ValidationError``."""
        model = payload if isinstance(payload, schema) else schema.model_validate(
            payload.model_dump(exclude_unset=True) if isinstance(payload, BaseModel) else dict(payload)
        )
        values = model.model_dump(exclude_unset=partial)
        return {key: value for key, value in values.items() if key not in SERVER_ASSIGNED_FIELDS}

    # ------------------------------------------------------------------ CRUD

    async def get_all(self, ctx: SessionContext, filters: Optional[Mapping[str, Any]] = None) -> Result:
        """All rows matching ``filters``, newest first."""
        query = self.query(ctx).where(filters).order("created_at", desc=True)
        result = await self.tables.select(ctx.access_token, query)
        return self.finish("get_all", result, self.parse_many)

    async def get_by_id(self, ctx: SessionContext, id: str) -> Result:
        query = self.query(ctx).where(id=id).one()
        result = await self.tables.select(ctx.access_token, query)
        return self.finish("get_by_id", result, self.parse)

    async def create(self, ctx: SessionContext, payload: Payload) -> Result:
        try:
            values = self.dump(payload, self.create_schema, partial=False)
        except ValidationError as exc:
            return validation_failure(exc)

        if self.tenant_scoped and not values.get("company_id"):
            values["company_id"] = ctx.tenant_id

        result = await self.tables.insert(ctx.access_token, self.table, [values], single=True)
        return self.finish("create", result, self.parse)

    async def update(self, ctx: SessionContext, id: str, payload: Payload) -> Result:
        """Merge the fields set on ``payload`` into row ``id``; unset fields stay untouched."""
        try:
            values = self.dump(payload, self.update_schema, partial=True)
        except ValidationError as exc:
            return validation_failure(exc)

        values = {key: value for key, value in values.items() if key not in self.protected_fields}
        if not values:
            return await self.get_by_id(ctx, id)
        return await self.update_values(ctx, id, values, operation="update")

    async def update_values(
        self, ctx: SessionContext, id: str, values: Mapping[str, Any], *, operation: str = "update"
    ) -> Result:
        """Apply already-validated column values to row ``id``."""
        query = self.query(ctx).where(id=id).one()
        result = await self.tables.update(ctx.access_token, query, values)
        return self.finish(operation, result, self.parse)

    async def delete(self, ctx: SessionContext, id: str) -> Result:
        query = self.query(ctx).where(id=id).one()
        result = await self.tables.delete(ctx.access_token, query)
        return self.finish("delete", result, lambda row: None)
