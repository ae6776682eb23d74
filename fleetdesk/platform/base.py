"""
Boundary with the hosted data platform.

The platform exposes three interfaces. Every method is a coroutine returning a ``Result``;
adapters translate transport and remote failures into ``ServiceError`` values.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from fleetdesk.core.errors import Result
from fleetdesk.platform.query import TableQuery


class TableGateway(Protocol):
    async def select(self, access_token: Optional[str], query: TableQuery) -> Result:
        """Rows matching ``query`` (a single mapping when ``query.single``)."""
        ...

    async def insert(
        self, access_token: Optional[str], table: str, rows: Sequence[Mapping[str, Any]], *, single: bool = False
    ) -> Result:
        ...

    async def upsert(
        self,
        access_token: Optional[str],
        table: str,
        rows: Sequence[Mapping[str, Any]],
        *,
        on_conflict: str,
        single: bool = False,
    ) -> Result:
        ...

    async def update(self, access_token: Optional[str], query: TableQuery, values: Mapping[str, Any]) -> Result:
        """Apply ``values`` to the rows selected by ``query``; returns the updated rows."""
        ...

    async def delete(self, access_token: Optional[str], query: TableQuery) -> Result:
        """Delete the rows selected by ``query``; returns the deleted rows."""
        ...


class AuthGateway(Protocol):
    async def sign_in_with_password(self, email: str, password: str) -> Result:
        ...

    async def sign_up(
        self, email: str, password: str, metadata: Optional[Dict[str, Any]] = None, redirect_to: Optional[str] = None
    ) -> Result:
        ...

    async def sign_out(self, access_token: str) -> Result:
        ...

    async def get_user(self, access_token: str) -> Result:
        ...

    async def reset_password_for_email(self, email: str, redirect_to: Optional[str] = None) -> Result:
        ...

    async def update_user(self, access_token: str, *, password: Optional[str] = None) -> Result:
        ...


class StorageGateway(Protocol):
    async def create_signed_upload_url(
        self,
        access_token: Optional[str],
        bucket: str,
        path: str,
        *,
        upsert: bool = True,
        max_size: Optional[int] = None,
    ) -> Result:
        """
        A ``SignedUpload`` the caller transfers the file content to directly.

        ``max_size`` caps the bytes the URL accepts. Backends that only know a
        bucket-wide limit enforce that one instead.
        """
        ...

    async def create_signed_url(
        self, access_token: Optional[str], bucket: str, path: str, expires_in: int
    ) -> Result:
        """A downloadable URL string valid for ``expires_in`` seconds."""
        ...

    async def remove(self, access_token: Optional[str], bucket: str, paths: List[str]) -> Result:
        ...


@dataclass
class Platform:
    tables: TableGateway
    auth: AuthGateway
    storage: StorageGateway

    async def aclose(self) -> None:
        for component in (self.tables, self.auth, self.storage):
            closer = getattr(component, "aclose", None)
            if closer is not None:
                await closer()
