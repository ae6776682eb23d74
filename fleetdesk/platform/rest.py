"""
REST adapter for the hosted platform.

Tables are served PostgREST-style under ``/rest/v1``, auth GoTrue-style under ``/auth/v1``
and object storage under ``/storage/v1``. All three share one ``httpx.AsyncClient``.
"""
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import parse_qs, quote, urlsplit

import httpx
from fastapi.encoders import jsonable_encoder

from fleetdesk.config import settings
from fleetdesk.core.errors import ErrorKind, Result, ServiceError
from fleetdesk.core.logging_config import get_logger
from fleetdesk.platform.base import Platform
from fleetdesk.platform.query import Condition, Op, TableQuery, escape_like
from fleetdesk.schemas.auth import AuthSession, AuthUser
from fleetdesk.schemas.document import SignedUpload

logger = get_logger(__name__)

OBJECT_MEDIA_TYPE = "application/vnd.pgrst.object+json"
_RESERVED_IN_LIST = set(',()"')


def _encode_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def _quote_list_item(value: Any) -> str:
    text = _encode_value(value)
    if any(ch in _RESERVED_IN_LIST for ch in text):
        return '"' + text.replace('"', '\\"') + '"'
    return text


def encode_condition(condition: Condition) -> str:
    """PostgREST operator expression for one condition, e.g. ``lt.2026-11-18``."""
    if condition.op is Op.IN:
        return "in.(" + ",".join(_quote_list_item(v) for v in condition.value) + ")"
    if condition.op is Op.ILIKE:
        return f"ilike.{str(condition.value).replace('%', '*')}"
    return f"{condition.op.value}.{_encode_value(condition.value)}"


def build_params(query: TableQuery, *, include_select: bool = True) -> List[Tuple[str, str]]:
    params: List[Tuple[str, str]] = []
    if include_select:
        params.append(("select", query.columns))
    for condition in query.conditions:
        params.append((condition.column, encode_condition(condition)))
    if query.search_term and query.search_columns:
        term = escape_like("".join(ch for ch in query.search_term if ch not in _RESERVED_IN_LIST and ch != "*"))
        clauses = ",".join(f"{column}.ilike.*{term}*" for column in query.search_columns)
        params.append(("or", f"({clauses})"))
    if query.order_by:
        params.append(("order", f"{query.order_by}.{'asc' if query.ascending else 'desc'}"))
    return params


def parse_content_range(header: Optional[str]) -> Optional[int]:
    """Total from a ``Content-Range: 0-9/42`` header; ``None`` when unknown (``*``)."""
    if not header or "/" not in header:
        return None
    total = header.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else None


def _payload(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def error_from_response(response: httpx.Response) -> ServiceError:
    """Classify a platform error response into the shared error taxonomy."""
    payload = _payload(response)
    body = payload if isinstance(payload, dict) else {}
    raw_code = body.get("code") or body.get("error_code") or body.get("error")
    code = str(raw_code) if raw_code is not None else None
    message = (
        body.get("message")
        or body.get("msg")
        or body.get("error_description")
        or (body.get("error") if isinstance(body.get("error"), str) else None)
        or response.reason_phrase
        or f"HTTP {response.status_code}"
    )
    status_code = response.status_code

    if code == "PGRST116":
        kind = ErrorKind.NOT_FOUND
    elif status_code in (401, 403) or code in ("42501", "invalid_grant", "PGRST301", "bad_jwt"):
        kind = ErrorKind.UNAUTHORIZED
    elif status_code == 404:
        kind = ErrorKind.NOT_FOUND
    elif status_code in (400, 409, 422) or (code and code[:2] in ("22", "23")):
        kind = ErrorKind.VALIDATION_ERROR
    elif status_code in (502, 503, 504):
        kind = ErrorKind.NETWORK_ERROR
    else:
        kind = ErrorKind.UNKNOWN

    details = {k: body.get(k) for k in ("details", "hint") if body.get(k)} or None
    return ServiceError(kind, message, code=code, details=details, status_code=status_code)


class RestConnection:
    """Shared HTTP client plus the header conventions of the hosted platform."""

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    def headers(self, access_token: Optional[str] = None, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {access_token or self.anon_key}",
        }
        if extra:
            headers.update(extra)
        return headers

    async def request(
        self,
        method: str,
        url: str,
        *,
        access_token: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        ok_statuses: Tuple[int, ...] = (),
        **kwargs: Any,
    ) -> Result:
        try:
            response = await self.client.request(method, url, headers=self.headers(access_token, headers), **kwargs)
        except httpx.TimeoutException as exc:
            logger.error(f"[Platform] {method} {url} timed out: {exc}")
            return Result.failure(ServiceError.network(f"Request to {url} timed out"))
        except httpx.TransportError as exc:
            logger.error(f"[Platform] {method} {url} transport failure: {exc}")
            return Result.failure(ServiceError.network(f"Could not reach the platform: {exc}"))

        if response.is_error and response.status_code not in ok_statuses:
            error = error_from_response(response)
            logger.warning(f"[Platform] {method} {url} -> {response.status_code} {error.kind.value}: {error.message}")
            return Result.failure(error)
        return Result.success(response)

    async def aclose(self) -> None:
        await self.client.aclose()


class RestTableGateway:
    def __init__(self, connection: RestConnection):
        self.connection = connection

    @staticmethod
    def _path(table: str) -> str:
        return f"/rest/v1/{table}"

    @staticmethod
    def _rows(response: httpx.Response, single: bool) -> Any:
        payload = _payload(response)
        if single:
            return payload
        return payload if payload is not None else []

    async def select(self, access_token: Optional[str], query: TableQuery) -> Result:
        headers: Dict[str, str] = {}
        if query.single:
            headers["Accept"] = OBJECT_MEDIA_TYPE
        if query.limit is not None:
            start = query.offset or 0
            headers["Range-Unit"] = "items"
            headers["Range"] = f"{start}-{start + query.limit - 1}"
        if query.count:
            headers["Prefer"] = "count=exact"

        result = await self.connection.request(
            "GET",
            self._path(query.table),
            access_token=access_token,
            headers=headers,
            params=build_params(query),
            ok_statuses=(416,),
        )
        if not result.ok:
            return result

        response: httpx.Response = result.data
        count = parse_content_range(response.headers.get("Content-Range")) if query.count else None
        if response.status_code == 416:
            # page past the end
            return Result.success([], count=count)
        return Result.success(self._rows(response, query.single), count=count)

    async def insert(
        self, access_token: Optional[str], table: str, rows: Sequence[Mapping[str, Any]], *, single: bool = False
    ) -> Result:
        headers = {"Prefer": "return=representation"}
        if single:
            headers["Accept"] = OBJECT_MEDIA_TYPE
        result = await self.connection.request(
            "POST",
            self._path(table),
            access_token=access_token,
            headers=headers,
            json=jsonable_encoder(list(rows)),
        )
        return result.map(lambda response: self._rows(response, single))

    async def upsert(
        self,
        access_token: Optional[str],
        table: str,
        rows: Sequence[Mapping[str, Any]],
        *,
        on_conflict: str,
        single: bool = False,
    ) -> Result:
        headers = {"Prefer": "return=representation,resolution=merge-duplicates"}
        if single:
            headers["Accept"] = OBJECT_MEDIA_TYPE
        result = await self.connection.request(
            "POST",
            self._path(table),
            access_token=access_token,
            headers=headers,
            params={"on_conflict": on_conflict},
            json=jsonable_encoder(list(rows)),
        )
        return result.map(lambda response: self._rows(response, single))

    async def update(self, access_token: Optional[str], query: TableQuery, values: Mapping[str, Any]) -> Result:
        headers = {"Prefer": "return=representation"}
        if query.single:
            headers["Accept"] = OBJECT_MEDIA_TYPE
        result = await self.connection.request(
            "PATCH",
            self._path(query.table),
            access_token=access_token,
            headers=headers,
            params=build_params(query, include_select=False),
            json=jsonable_encoder(dict(values)),
        )
        return result.map(lambda response: self._rows(response, query.single))

    async def delete(self, access_token: Optional[str], query: TableQuery) -> Result:
        headers = {"Prefer": "return=representation"}
        if query.single:
            headers["Accept"] = OBJECT_MEDIA_TYPE
        result = await self.connection.request(
            "DELETE",
            self._path(query.table),
            access_token=access_token,
            headers=headers,
            params=build_params(query, include_select=False),
        )
        return result.map(lambda response: self._rows(response, query.single))


def _user_from_payload(payload: Mapping[str, Any]) -> AuthUser:
    return AuthUser(
        id=payload["id"],
        email=payload.get("email"),
        user_metadata=payload.get("user_metadata") or {},
    )


def _session_from_payload(payload: Mapping[str, Any]) -> AuthSession:
    if "access_token" in payload:
        user = payload.get("user")
        return AuthSession(
            user=_user_from_payload(user) if user else None,
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            expires_in=payload.get("expires_in"),
            token_type=payload.get("token_type", "bearer"),
        )
    # sign-up awaiting confirmation returns the bare user
    return AuthSession(user=_user_from_payload(payload) if payload.get("id") else None)


class RestAuthGateway:
    def __init__(self, connection: RestConnection):
        self.connection = connection

    async def sign_in_with_password(self, email: str, password: str) -> Result:
        result = await self.connection.request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        return result.map(lambda response: _session_from_payload(response.json()))

    async def sign_up(
        self, email: str, password: str, metadata: Optional[Dict[str, Any]] = None, redirect_to: Optional[str] = None
    ) -> Result:
        result = await self.connection.request(
            "POST",
            "/auth/v1/signup",
            params={"redirect_to": redirect_to} if redirect_to else None,
            json={"email": email, "password": password, "data": metadata or {}},
        )
        return result.map(lambda response: _session_from_payload(response.json()))

    async def sign_out(self, access_token: str) -> Result:
        result = await self.connection.request("POST", "/auth/v1/logout", access_token=access_token)
        return result.map(lambda response: None)

    async def get_user(self, access_token: str) -> Result:
        result = await self.connection.request("GET", "/auth/v1/user", access_token=access_token)
        return result.map(lambda response: _user_from_payload(response.json()))

    async def reset_password_for_email(self, email: str, redirect_to: Optional[str] = None) -> Result:
        result = await self.connection.request(
            "POST",
            "/auth/v1/recover",
            params={"redirect_to": redirect_to} if redirect_to else None,
            json={"email": email},
        )
        return result.map(lambda response: None)

    async def update_user(self, access_token: str, *, password: Optional[str] = None) -> Result:
        body = {"password": password} if password is not None else {}
        result = await self.connection.request("PUT", "/auth/v1/user", access_token=access_token, json=body)
        return result.map(lambda response: _user_from_payload(response.json()))


class RestStorageGateway:
    def __init__(self, connection: RestConnection):
        self.connection = connection

    def _absolute(self, relative: str) -> str:
        return f"{self.connection.base_url}/storage/v1{relative}"

    async def create_signed_upload_url(
        self,
        access_token: Optional[str],
        bucket: str,
        path: str,
        *,
        upsert: bool = True,
        max_size: Optional[int] = None,
    ) -> Result:
        # the hosted bucket applies its own file_size_limit
        result = await self.connection.request(
            "POST",
            f"/storage/v1/object/upload/sign/{bucket}/{quote(path)}",
            access_token=access_token,
            headers={"x-upsert": "true" if upsert else "false"},
        )
        if not result.ok:
            return result
        relative = result.data.json()["url"]
        token = parse_qs(urlsplit(relative).query).get("token", [None])[0]
        return Result.success(SignedUpload(path=path, url=self._absolute(relative), token=token))

    async def create_signed_url(
        self, access_token: Optional[str], bucket: str, path: str, expires_in: int
    ) -> Result:
        result = await self.connection.request(
            "POST",
            f"/storage/v1/object/sign/{bucket}/{quote(path)}",
            access_token=access_token,
            json={"expiresIn": expires_in},
        )
        return result.map(lambda response: self._absolute(response.json()["signedURL"]))

    async def remove(self, access_token: Optional[str], bucket: str, paths: List[str]) -> Result:
        result = await self.connection.request(
            "DELETE",
            f"/storage/v1/object/{bucket}",
            access_token=access_token,
            json={"prefixes": list(paths)},
        )
        return result.map(lambda response: None)


def build_rest_platform(
    base_url: Optional[str] = None,
    anon_key: Optional[str] = None,
    *,
    timeout: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Platform:
    connection = RestConnection(
        base_url or settings.PLATFORM_URL,
        anon_key if anon_key is not None else settings.PLATFORM_ANON_KEY,
        timeout=timeout or settings.PLATFORM_TIMEOUT_SECONDS,
        transport=transport,
    )
    logger.info(f"Using hosted platform at {connection.base_url}")
    return Platform(
        tables=RestTableGateway(connection),
        auth=RestAuthGateway(connection),
        storage=RestStorageGateway(connection),
    )
