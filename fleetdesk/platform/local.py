"""
Local platform adapter used in development and tests.

Tables live in a SQLAlchemy database, users and sessions are issued as JWTs and stored
objects go through fsspec. The adapter applies the same tenant row-level rules the hosted
platform enforces, so the access layer behaves identically against either backend.
"""
import asyncio
import functools
import threading
import time
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import AbstractSet, Any, Callable, Dict, List, Mapping, Optional, Sequence
from urllib.parse import quote

import fsspec
import jwt
from cachetools import TLRUCache
from sqlalchemy import Date, DateTime, delete as sql_delete, func, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DataError, IntegrityError, OperationalError, SQLAlchemyError, StatementError
from sqlalchemy.orm import Session

from fleetdesk.config import settings
from fleetdesk.core.errors import Result, ServiceError
from fleetdesk.core.logging_config import get_logger
from fleetdesk.core.security import (
    create_access_token,
    create_refresh_token,
    create_signed_token,
    decode_token,
    hash_password,
    verify_password,
)
from fleetdesk.database.session import build_engine, build_session_factory, create_tables
from fleetdesk.models import TABLES, AuthUser as AuthUserRow, Profile
from fleetdesk.platform.base import Platform
from fleetdesk.platform.query import LIKE_ESCAPE, Condition, Op, TableQuery, escape_like
from fleetdesk.schemas.auth import AuthSession, AuthUser
from fleetdesk.schemas.document import SignedUpload

logger = get_logger(__name__)

TENANT_TABLES = {"drivers", "vehicles", "documents", "maintenance_records", "driver_assignments"}
SESSION_TOKEN_TYPES = frozenset({"access"})
# a recovery link may only be used to set a new password
PASSWORD_UPDATE_TOKEN_TYPES = frozenset({"access", "recovery"})
UPLOAD_URL_EXPIRY_SECONDS = 2 * 60 * 60
MIN_PASSWORD_LENGTH = 6


class Rejected(Exception):
    """Raised inside a database unit of work to abort it with a classified error."""

    def __init__(self, error: ServiceError):
        super().__init__(error.message)
        self.error = error


def _rls_violation(table: str) -> Rejected:
    return Rejected(
        ServiceError.unauthorized(
            f'new row violates row-level security policy for table "{table}"', code="42501"
        )
    )


def _single_row_missing() -> Rejected:
    return Rejected(
        ServiceError.not_found(
            "JSON object requested, multiple (or no) rows returned", code="PGRST116", status_code=406
        )
    )


def map_database_error(exc: SQLAlchemyError) -> ServiceError:
    """Classify a SQLAlchemy failure into the shared error taxonomy."""
    error_msg = str(getattr(exc, "orig", None) or exc).strip().replace("\n", " ")

    if isinstance(exc, IntegrityError):
        return ServiceError.validation(error_msg, code="23000")
    if isinstance(exc, OperationalError):
        return ServiceError.network(f"Database unavailable: {error_msg}")
    if isinstance(exc, DataError):
        return ServiceError.validation(error_msg, code="22000")
    if isinstance(exc, StatementError) and getattr(exc, "orig", None) is None:
        # bind parameter processing failed before reaching the database
        return ServiceError.validation(error_msg)
    return ServiceError.unknown(f"Database operation failed: {error_msg}")


def row_to_dict(row: Any) -> Dict[str, Any]:
    return {column.name: getattr(row, column.name) for column in row.__table__.columns}


def _coerce(column, value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, str):
        if isinstance(column.type, DateTime):
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        if isinstance(column.type, Date):
            return date.fromisoformat(value[:10])
    return value


@dataclass(frozen=True)
class Caller:
    user_id: str
    tenant_id: Optional[str]
    email: Optional[str] = None


@dataclass(frozen=True)
class RecoveryLink:
    """A password recovery link waiting to be mailed."""
    email: str
    redirect_to: str
    token: str

    @property
    def url(self) -> str:
        return f"{self.redirect_to}#access_token={self.token}&type=recovery"


def _until_expiry(token: str, expires_at: float, now: float) -> float:
    return expires_at


class TokenVerifier:
    """
    Validates session tokens and remembers the ones revoked by sign-out.

    A revoked token is only kept until its own ``exp`` claim passes; after that the
    signature check rejects it anyway.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        *,
        maxsize: Optional[int] = None,
        timer: Callable[[], float] = time.time,
    ):
        self.secret_key = secret_key or settings.SECRET_KEY
        self._lock = threading.Lock()
        self._revoked: TLRUCache = TLRUCache(
            maxsize=maxsize or settings.REVOKED_SESSIONS_MAXSIZE, ttu=_until_expiry, timer=timer
        )

    def revoke(self, token: str, expires_at: float) -> None:
        with self._lock:
            self._revoked[token] = expires_at

    def is_revoked(self, token: str) -> bool:
        with self._lock:
            return token in self._revoked

    def revoked_count(self) -> int:
        with self._lock:
            self._revoked.expire()
            return len(self._revoked)

    def verify(self, token: Optional[str], allowed: AbstractSet[str] = SESSION_TOKEN_TYPES) -> Dict[str, Any]:
        """Claims of a live token whose ``token_type`` is in ``allowed``; raises ``Rejected`` otherwise."""
        if not token:
            raise Rejected(ServiceError.unauthorized("Missing access token"))
        if self.is_revoked(token):
            raise Rejected(ServiceError.unauthorized("Session has been revoked", code="session_not_found"))
        try:
            claims = decode_token(token, self.secret_key)
        except jwt.ExpiredSignatureError:
            raise Rejected(ServiceError.unauthorized("JWT expired", code="bad_jwt"))
        except jwt.InvalidTokenError:
            raise Rejected(ServiceError.unauthorized("Invalid access token", code="bad_jwt"))
        if claims.get("token_type") not in allowed or not claims.get("sub"):
            raise Rejected(ServiceError.unauthorized("Invalid access token", code="bad_jwt"))
        return claims


class LocalDatabase:
    """Runs blocking units of work on the default executor, one statement batch at a time."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self.session_factory = build_session_factory(engine)
        self._lock = threading.Lock()

    def _run_sync(self, work: Callable[..., Any], *args: Any) -> Any:
        with self._lock:
            session = self.session_factory()
            try:
                result = work(session, *args)
                session.commit()
                return result
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    async def run(self, work: Callable[..., Any], *args: Any) -> Result:
        loop = asyncio.get_running_loop()
        try:
            data = await loop.run_in_executor(None, functools.partial(self._run_sync, work, *args))
        except Rejected as exc:
            return Result.failure(exc.error)
        except SQLAlchemyError as exc:
            error = map_database_error(exc)
            logger.error(f"[LocalPlatform] {error.kind.value}: {error.message}")
            return Result.failure(error)
        except ValueError as exc:
            return Result.failure(ServiceError.validation(str(exc)))
        if isinstance(data, Result):
            return data
        return Result.success(data)

    def dispose(self) -> None:
        self.engine.dispose()


class LocalTableGateway:
    def __init__(self, database: LocalDatabase, verifier: TokenVerifier):
        self.database = database
        self.verifier = verifier

    # ------------------------------------------------------------------ helpers

    def _caller(self, session: Session, access_token: Optional[str]) -> Caller:
        claims = self.verifier.verify(access_token)
        user_id = claims["sub"]
        tenant_id = session.scalar(select(Profile.company_id).where(Profile.user_id == user_id))
        return Caller(user_id=user_id, tenant_id=tenant_id, email=claims.get("email"))

    @staticmethod
    def _model(table: str):
        model = TABLES.get(table)
        if model is None:
            raise Rejected(
                ServiceError.not_found(f'relation "public.{table}" does not exist', code="42P01")
            )
        return model

    @staticmethod
    def _column(model, name: str):
        column = model.__table__.columns.get(name)
        if column is None:
            raise Rejected(
                ServiceError.validation(
                    f"column {model.__tablename__}.{name} does not exist", code="42703"
                )
            )
        return column

    def _clause(self, model, condition: Condition):
        column = self._column(model, condition.column)
        attr = getattr(model, column.name)
        if condition.op is Op.IN:
            return attr.in_([_coerce(column, v) for v in condition.value])
        if condition.op is Op.IS:
            return attr.is_(condition.value)
        value = _coerce(column, condition.value)
        if condition.op is Op.EQ:
            return attr == value
        if condition.op is Op.NEQ:
            return attr != value
        if condition.op is Op.GT:
            return attr > value
        if condition.op is Op.GTE:
            return attr >= value
        if condition.op is Op.LT:
            return attr < value
        if condition.op is Op.LTE:
            return attr <= value
        return attr.ilike(value)

    def _visibility(self, model, caller: Caller, *, for_write: bool = False) -> list:
        """Row filter applied to every read, update and delete on ``model``."""
        table = model.__tablename__
        if table in TENANT_TABLES:
            return [model.company_id == caller.tenant_id]
        if table == "companies":
            return [model.id == caller.tenant_id]
        if table == "profiles":
            if for_write or caller.tenant_id is None:
                return [model.user_id == caller.user_id]
            return [or_(model.user_id == caller.user_id, model.company_id == caller.tenant_id)]
        return []

    def _check_row(self, model, caller: Caller, values: Mapping[str, Any]) -> None:
        """Reject rows the caller may not write."""
        table = model.__tablename__
        if table in TENANT_TABLES:
            if caller.tenant_id is None or values.get("company_id", caller.tenant_id) != caller.tenant_id:
                raise _rls_violation(table)
        elif table == "profiles":
            if values.get("user_id", caller.user_id) != caller.user_id:
                raise _rls_violation(table)
        elif table == "companies":
            if "id" in values and values["id"] != caller.tenant_id:
                raise _rls_violation(table)

    def _prepare(self, model, row: Mapping[str, Any]) -> Dict[str, Any]:
        values = {}
        for key, value in row.items():
            column = self._column(model, key)
            values[column.name] = _coerce(column, value)
        return values

    def _where(self, model, caller: Caller, query: TableQuery, *, for_write: bool = False) -> list:
        clauses = [self._clause(model, condition) for condition in query.conditions]
        clauses.extend(self._visibility(model, caller, for_write=for_write))
        if query.search_term and query.search_columns:
            pattern = f"%{escape_like(query.search_term)}%"
            clauses.append(
                or_(*[
                    getattr(model, self._column(model, c).name).ilike(pattern, escape=LIKE_ESCAPE)
                    for c in query.search_columns
                ])
            )
        return clauses

    # ------------------------------------------------------------------ units of work

    def _select(self, session: Session, access_token: Optional[str], query: TableQuery) -> Result:
        caller = self._caller(session, access_token)
        model = self._model(query.table)
        clauses = self._where(model, caller, query)

        total = None
        if query.count:
            total = session.scalar(select(func.count()).select_from(model).where(*clauses))

        stmt = select(model).where(*clauses)
        if query.order_by:
            order_column = getattr(model, self._column(model, query.order_by).name)
            stmt = stmt.order_by(order_column.asc() if query.ascending else order_column.desc())
        if query.single:
            stmt = stmt.limit(2)
        elif query.limit is not None:
            stmt = stmt.offset(query.offset or 0).limit(query.limit)

        rows = [row_to_dict(row) for row in session.scalars(stmt).all()]
        if query.single:
            if len(rows) != 1:
                raise _single_row_missing()
            return Result.success(rows[0])
        return Result.success(rows, count=total)

    def _insert(self, session: Session, access_token: Optional[str], table: str, rows, single: bool):
        caller = self._caller(session, access_token)
        model = self._model(table)
        if table == "companies" and caller.tenant_id is not None:
            raise _rls_violation(table)

        created = []
        for row in rows:
            values = self._prepare(model, row)
            self._check_row(model, caller, values)
            instance = model(**values)
            session.add(instance)
            created.append(instance)
        session.flush()
        return self._shape([row_to_dict(instance) for instance in created], single)

    def _upsert(self, session: Session, access_token: Optional[str], table: str, rows, on_conflict: str, single: bool):
        caller = self._caller(session, access_token)
        model = self._model(table)
        conflict_attr = getattr(model, self._column(model, on_conflict).name)

        written = []
        for row in rows:
            values = self._prepare(model, row)
            self._check_row(model, caller, values)
            existing = session.scalars(select(model).where(conflict_attr == values.get(on_conflict))).first()
            if existing is None:
                existing = model(**values)
                session.add(existing)
            else:
                visible = session.scalars(
                    select(model).where(model.id == existing.id, *self._visibility(model, caller, for_write=True))
                ).first()
                if visible is None:
                    raise _rls_violation(table)
                for key, value in values.items():
                    setattr(existing, key, value)
            written.append(existing)
        session.flush()
        return self._shape([row_to_dict(instance) for instance in written], single)

    def _update(self, session: Session, access_token: Optional[str], query: TableQuery, values: Mapping[str, Any]):
        caller = self._caller(session, access_token)
        model = self._model(query.table)
        prepared = self._prepare(model, values)
        if "company_id" in prepared or (model.__tablename__ == "profiles" and "user_id" in prepared):
            self._check_row(model, caller, prepared)

        targets = session.scalars(select(model).where(*self._where(model, caller, query, for_write=True))).all()
        if query.single and len(targets) != 1:
            raise _single_row_missing()
        for target in targets:
            for key, value in prepared.items():
                setattr(target, key, value)
        session.flush()
        return self._shape([row_to_dict(target) for target in targets], query.single)

    def _delete(self, session: Session, access_token: Optional[str], query: TableQuery):
        caller = self._caller(session, access_token)
        model = self._model(query.table)
        if model.__tablename__ in ("companies", "profiles"):
            raise Rejected(
                ServiceError.unauthorized(f'permission denied for table {model.__tablename__}', code="42501")
            )

        targets = session.scalars(select(model).where(*self._where(model, caller, query, for_write=True))).all()
        if query.single and len(targets) != 1:
            raise _single_row_missing()
        removed = [row_to_dict(target) for target in targets]
        if removed:
            session.execute(sql_delete(model).where(model.id.in_([row["id"] for row in removed])))
        return self._shape(removed, query.single)

    @staticmethod
    def _shape(rows: List[Dict[str, Any]], single: bool) -> Any:
        if single:
            if len(rows) != 1:
                raise _single_row_missing()
            return rows[0]
        return rows

    # ------------------------------------------------------------------ interface

    async def select(self, access_token: Optional[str], query: TableQuery) -> Result:
        return await self.database.run(self._select, access_token, query)

    async def insert(
        self, access_token: Optional[str], table: str, rows: Sequence[Mapping[str, Any]], *, single: bool = False
    ) -> Result:
        return await self.database.run(self._insert, access_token, table, list(rows), single)

    async def upsert(
        self,
        access_token: Optional[str],
        table: str,
        rows: Sequence[Mapping[str, Any]],
        *,
        on_conflict: str,
        single: bool = False,
    ) -> Result:
        return await self.database.run(self._upsert, access_token, table, list(rows), on_conflict, single)

    async def update(self, access_token: Optional[str], query: TableQuery, values: Mapping[str, Any]) -> Result:
        return await self.database.run(self._update, access_token, query, dict(values))

    async def delete(self, access_token: Optional[str], query: TableQuery) -> Result:
        return await self.database.run(self._delete, access_token, query)

    async def aclose(self) -> None:
        self.database.dispose()


def _auth_user(row: AuthUserRow) -> AuthUser:
    return AuthUser(id=row.id, email=row.email, user_metadata=dict(row.user_metadata or {}))


class LocalAuthGateway:
    """Email/password accounts confirmed on sign-up, sessions issued as signed JWTs."""

    def __init__(self, database: LocalDatabase, verifier: TokenVerifier):
        self.database = database
        self.verifier = verifier
        # recovery links issued; there is no mailer behind the local platform
        self.outbox: List[RecoveryLink] = []

    def _session_for(self, row: AuthUserRow) -> AuthSession:
        secret = self.verifier.secret_key
        return AuthSession(
            user=_auth_user(row),
            access_token=create_access_token(row.id, row.email, secret_key=secret),
            refresh_token=create_refresh_token(row.id, secret_key=secret),
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        )

    @staticmethod
    def _find(session: Session, email: str) -> Optional[AuthUserRow]:
        return session.scalars(select(AuthUserRow).where(AuthUserRow.email == email.strip().lower())).first()

    def _user_for_token(
        self, session: Session, access_token: str, allowed: AbstractSet[str] = SESSION_TOKEN_TYPES
    ) -> AuthUserRow:
        claims = self.verifier.verify(access_token, allowed)
        row = session.get(AuthUserRow, claims["sub"])
        if row is None:
            raise Rejected(ServiceError.unauthorized("User from sub claim in JWT does not exist", code="user_not_found"))
        return row

    def _sign_in(self, session: Session, email: str, password: str) -> AuthSession:
        row = self._find(session, email)
        if row is None or not verify_password(password, row.password_hash):
            raise Rejected(ServiceError.unauthorized("Invalid login credentials", code="invalid_grant"))
        row.last_sign_in_at = datetime.now(timezone.utc).replace(tzinfo=None)
        return self._session_for(row)

    def _sign_up(self, session: Session, email: str, password: str, metadata: Optional[Dict[str, Any]]) -> AuthSession:
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise Rejected(
                ServiceError.validation(
                    f"Password should be at least {MIN_PASSWORD_LENGTH} characters", code="weak_password"
                )
            )
        if self._find(session, email) is not None:
            raise Rejected(ServiceError.validation("User already registered", code="user_already_exists"))
        row = AuthUserRow(
            email=email.strip().lower(),
            password_hash=hash_password(password),
            user_metadata=dict(metadata or {}),
        )
        session.add(row)
        session.flush()
        return self._session_for(row)

    def _get_user(self, session: Session, access_token: str) -> AuthUser:
        return _auth_user(self._user_for_token(session, access_token))

    def _recover(self, session: Session, email: str, redirect_to: Optional[str]) -> None:
        row = self._find(session, email)
        if row is None:
            # unknown addresses get the same answer
            return None
        token = create_access_token(
            row.id, row.email, custom_claims={"token_type": "recovery"}, secret_key=self.verifier.secret_key
        )
        self.outbox.append(RecoveryLink(email=row.email, redirect_to=redirect_to or settings.FRONTEND_URL, token=token))
        logger.info(f"Password recovery link issued for {row.email}")
        return None

    def _update_user(self, session: Session, access_token: str, password: Optional[str]) -> AuthUser:
        row = self._user_for_token(session, access_token, PASSWORD_UPDATE_TOKEN_TYPES)
        if password is not None:
            if len(password) < MIN_PASSWORD_LENGTH:
                raise Rejected(
                    ServiceError.validation(
                        f"Password should be at least {MIN_PASSWORD_LENGTH} characters", code="weak_password"
                    )
                )
            row.password_hash = hash_password(password)
        session.flush()
        return _auth_user(row)

    async def sign_in_with_password(self, email: str, password: str) -> Result:
        return await self.database.run(self._sign_in, email, password)

    async def sign_up(
        self, email: str, password: str, metadata: Optional[Dict[str, Any]] = None, redirect_to: Optional[str] = None
    ) -> Result:
        return await self.database.run(self._sign_up, email, password, metadata)

    async def sign_out(self, access_token: str) -> Result:
        try:
            claims = self.verifier.verify(access_token)
        except Rejected as exc:
            return Result.failure(exc.error)
        self.verifier.revoke(access_token, claims["exp"])
        return Result.success(None)

    async def get_user(self, access_token: str) -> Result:
        return await self.database.run(self._get_user, access_token)

    async def reset_password_for_email(self, email: str, redirect_to: Optional[str] = None) -> Result:
        return await self.database.run(self._recover, email, redirect_to)

    async def update_user(self, access_token: str, *, password: Optional[str] = None) -> Result:
        return await self.database.run(self._update_user, access_token, password)


class LocalStorageGateway:
    """
    Bucketed object storage on any fsspec filesystem.

    Objects are written and read through signed URLs served by the API's storage router;
    ``upload_to_signed_url`` and ``read_signed`` are what that router calls. Filesystem
    calls run on the default executor.
    """

    def __init__(
        self,
        verifier: TokenVerifier,
        base_url: Optional[str] = None,
        public_url: Optional[str] = None,
    ):
        self.verifier = verifier
        self.base_url = (base_url or settings.STORAGE_BASE_URL).rstrip("/")
        self.public_url = (public_url or f"{settings.PUBLIC_BASE_URL}{settings.API_PREFIX}").rstrip("/")
        self.fs, self.root = fsspec.core.url_to_fs(self.base_url)
        self.fs.makedirs(self.root, exist_ok=True)
        logger.info(f"Local storage initialized at {self.base_url}")

    def _object_path(self, bucket: str, path: str) -> str:
        if ".." in path.split("/") or path.startswith("/"):
            raise Rejected(ServiceError.validation(f"Invalid object path: {path}"))
        return f"{self.root}/{bucket}/{path}"

    def _object_url(self, bucket: str, path: str, token: str) -> str:
        return f"{self.public_url}/storage/object/{bucket}/{quote(path)}?token={token}"

    def _check_signed(self, token: Optional[str], operation: str, bucket: str, path: str) -> Dict[str, Any]:
        if not token:
            raise Rejected(ServiceError.unauthorized("Missing signed URL token"))
        try:
            claims = decode_token(token, self.verifier.secret_key)
        except jwt.ExpiredSignatureError:
            raise Rejected(ServiceError.unauthorized("Signed URL has expired"))
        except jwt.InvalidTokenError:
            raise Rejected(ServiceError.unauthorized("Invalid signed URL token"))
        if (claims.get("op"), claims.get("bucket"), claims.get("path")) != (operation, bucket, path):
            raise Rejected(ServiceError.unauthorized("Signed URL does not match the requested object"))
        return claims

    async def _run(self, work: Callable[..., Any], *args: Any) -> Result:
        loop = asyncio.get_running_loop()
        try:
            data = await loop.run_in_executor(None, functools.partial(work, *args))
        except Rejected as exc:
            return Result.failure(exc.error)
        except OSError as exc:
            logger.error(f"[LocalStorage] {type(exc).__name__}: {exc}")
            return Result.failure(ServiceError.network(f"Storage unavailable: {exc}"))
        return Result.success(data)

    # ------------------------------------------------------------------ blocking work

    def _sign_upload(
        self, access_token: Optional[str], bucket: str, path: str, upsert: bool, max_size: Optional[int]
    ) -> SignedUpload:
        self.verifier.verify(access_token)
        object_path = self._object_path(bucket, path)
        if not upsert and self.fs.exists(object_path):
            raise Rejected(ServiceError.validation("The resource already exists", code="Duplicate"))

        claims = {"op": "upload", "bucket": bucket, "path": path, "upsert": upsert}
        if max_size is not None:
            claims["max_size"] = max_size
        token = create_signed_token(claims, UPLOAD_URL_EXPIRY_SECONDS, secret_key=self.verifier.secret_key)
        return SignedUpload(path=path, url=self._object_url(bucket, path, token), token=token)

    def _sign_download(self, access_token: Optional[str], bucket: str, path: str, expires_in: int) -> str:
        self.verifier.verify(access_token)
        if not self.fs.exists(self._object_path(bucket, path)):
            raise Rejected(ServiceError.not_found("Object not found", code="not_found"))
        token = create_signed_token(
            {"op": "download", "bucket": bucket, "path": path},
            expires_in,
            secret_key=self.verifier.secret_key,
        )
        return self._object_url(bucket, path, token)

    def _remove(self, access_token: Optional[str], bucket: str, paths: List[str]) -> None:
        self.verifier.verify(access_token)
        object_paths = [self._object_path(bucket, path) for path in paths]
        for object_path in object_paths:
            if self.fs.exists(object_path):
                self.fs.rm(object_path)
                logger.info(f"Object deleted: {object_path}")
            else:
                logger.warning(f"Object not found for deletion: {object_path}")

    def _store(self, bucket: str, path: str, token: Optional[str], content: bytes) -> Dict[str, Any]:
        claims = self._check_signed(token, "upload", bucket, path)
        object_path = self._object_path(bucket, path)
        if not content:
            raise Rejected(ServiceError.validation("Empty upload body"))
        max_size = claims.get("max_size")
        if max_size is not None and len(content) > max_size:
            raise Rejected(
                ServiceError.validation(
                    f"Upload of {len(content)} bytes exceeds the {max_size} bytes this URL accepts",
                    code="EntityTooLarge",
                )
            )
        if not claims.get("upsert", True) and self.fs.exists(object_path):
            raise Rejected(ServiceError.validation("The resource already exists", code="Duplicate"))

        parent = object_path.rsplit("/", 1)[0]
        self.fs.makedirs(parent, exist_ok=True)
        with self.fs.open(object_path, "wb") as f:
            f.write(content)
        logger.info(f"Object stored: {bucket}/{path} ({len(content)} bytes)")
        return {"Key": f"{bucket}/{path}", "size": len(content)}

    def _read(self, bucket: str, path: str, token: Optional[str]) -> bytes:
        self._check_signed(token, "download", bucket, path)
        object_path = self._object_path(bucket, path)
        if not self.fs.exists(object_path):
            raise Rejected(ServiceError.not_found("Object not found", code="not_found"))
        with self.fs.open(object_path, "rb") as f:
            return f.read()

    # ------------------------------------------------------------------ gateway

    async def create_signed_upload_url(
        self,
        access_token: Optional[str],
        bucket: str,
        path: str,
        *,
        upsert: bool = True,
        max_size: Optional[int] = None,
    ) -> Result:
        return await self._run(self._sign_upload, access_token, bucket, path, upsert, max_size)

    async def create_signed_url(
        self, access_token: Optional[str], bucket: str, path: str, expires_in: int
    ) -> Result:
        return await self._run(self._sign_download, access_token, bucket, path, expires_in)

    async def remove(self, access_token: Optional[str], bucket: str, paths: List[str]) -> Result:
        return await self._run(self._remove, access_token, bucket, list(paths))

    async def upload_to_signed_url(self, bucket: str, path: str, token: Optional[str], content: bytes) -> Result:
        return await self._run(self._store, bucket, path, token, content)

    async def read_signed(self, bucket: str, path: str, token: Optional[str]) -> Result:
        return await self._run(self._read, bucket, path, token)


def build_local_platform(
    database_url: Optional[str] = None,
    *,
    storage_url: Optional[str] = None,
    public_url: Optional[str] = None,
    secret_key: Optional[str] = None,
    engine: Optional[Engine] = None,
) -> Platform:
    engine = engine or build_engine(database_url)
    create_tables(engine)
    database = LocalDatabase(engine)
    verifier = TokenVerifier(secret_key)
    logger.info(f"Using local platform database {engine.url.render_as_string(hide_password=True)}")
    return Platform(
        tables=LocalTableGateway(database, verifier),
        auth=LocalAuthGateway(database, verifier),
        storage=LocalStorageGateway(verifier, storage_url, public_url),
    )
