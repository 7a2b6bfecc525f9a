"""Supabase adapters over its REST endpoints.

Three adapters share one ``SupabaseRestClient``:

- ``SupabaseRecordStore``: PostgREST table access (``/rest/v1/{table}``)
- ``SupabaseIdentityProvider``: GoTrue signup and admin user removal (``/auth/v1``)
- ``SupabaseFunctionDispatcher``: edge function invocation (``/functions/v1/{name}``)

The shared client owns a synchronous ``httpx.Client`` unless one is
injected; call :meth:`SupabaseRestClient.close` to release it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from taxprotest.foundation.domain.ports import (
    ForeignKeyViolationError,
    IdentityProviderError,
    JobDispatchError,
    StoreError,
    UniqueViolationError,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from taxprotest.foundation.domain.ports import Condition, Filter, Record
    from taxprotest.infra.persistence.settings import SupabaseSettings

logger = logging.getLogger(__name__)

_UNIQUE_VIOLATION = "23505"
_FOREIGN_KEY_VIOLATION = "23503"
_RESERVED = set(',.:()"\\ ')


class SupabaseRequestError(Exception):
    """Raised when a Supabase endpoint answers with an error or cannot be reached.

    Attributes:
        status_code: HTTP status, or 0 for transport failures.
        code: Postgres or GoTrue error code from the body, when present.
        detail: Error message from the body.
    """

    def __init__(self, status_code: int, detail: str, code: str | None = None) -> None:
        self.status_code = status_code
        self.detail = detail
        self.code = code
        super().__init__(f"Supabase request failed ({status_code}): {detail}")


def _error_from_response(response: httpx.Response) -> SupabaseRequestError:
    detail = response.text or response.reason_phrase
    code: str | None = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "msg", "error_description", "error"):
            if body.get(key):
                detail = str(body[key])
                break
        raw_code = body.get("code") or body.get("error_code")
        code = str(raw_code) if raw_code is not None else None
    return SupabaseRequestError(response.status_code, detail, code)


class SupabaseRestClient:
    """Thin authenticated wrapper around the project's REST endpoints.

    Args:
        settings: Project URL, keys, schema and timeout.
        client: Optional shared httpx.Client (caller manages its lifecycle).
    """

    def __init__(self, settings: SupabaseSettings, client: httpx.Client | None = None) -> None:
        if not settings.url:
            msg = "SUPABASE_URL is not configured"
            raise ValueError(msg)
        self._settings = settings
        self._external_client = client is not None
        self._client: httpx.Client | None = client

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Sequence[tuple[str, str]] | Mapping[str, str] | None = None,
        json: Any = None,
        prefer: str | None = None,
        service_role: bool = True,
    ) -> httpx.Response:
        """Send one request and return the successful response.

        Args:
            method: HTTP method.
            path: Path below the project URL, e.g. ``/rest/v1/profiles``.
            params: Query parameters; a sequence keeps repeated keys.
            json: JSON body.
            prefer: Value for the PostgREST ``Prefer`` header.
            service_role: Authenticate with the service role key instead of
                the anon key.

        Raises:
            SupabaseRequestError: On a non-2xx response or a transport failure.
        """
        key = self._settings.service_role_key if service_role else self._settings.anon_key
        headers = {"apikey": key, "Authorization": f"Bearer {key}"}
        if path.startswith("/rest/"):
            headers["Accept-Profile"] = self._settings.db_schema
            headers["Content-Profile"] = self._settings.db_schema
        if prefer:
            headers["Prefer"] = prefer

        try:
            response = self._get_client().request(
                method,
                f"{self._settings.url}{path}",
                params=params,
                json=json,
                headers=headers,
                timeout=self._settings.timeout,
            )
        except httpx.HTTPError as exc:
            logger.warning(
                "supabase_request_transport_error",
                extra={"path": path, "error": str(exc)},
            )
            raise SupabaseRequestError(0, str(exc)) from exc

        if response.is_error:
            error = _error_from_response(response)
            logger.warning(
                "supabase_request_failed",
                extra={"path": path, "status_code": error.status_code, "code": error.code},
            )
            raise error
        return response

    def close(self) -> None:
        """Close the internal httpx client (no-op if an external client was provided)."""
        if self._client is not None and not self._external_client:
            self._client.close()
            self._client = None

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client()
        return self._client


# -- PostgREST filter encoding ------------------------------------------------


def _literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _quoted(value: Any) -> str:
    text = _literal(value)
    if any(char in _RESERVED for char in text):
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


def _condition(condition: Condition) -> str:
    if condition.operator == "in":
        return f"in.({','.join(_quoted(value) for value in condition.value)})"
    if condition.value is None:
        return "is.null"
    return f"eq.{_literal(condition.value)}"


def encode_filter(where: Filter | None) -> list[tuple[str, str]]:
    """Translate a ``Filter`` into PostgREST query parameters.

    Example:
        >>> encode_filter(Filter.eq("user_id", "u1").and_in("id", ["a", "b"]))
        [('user_id', 'eq.u1'), ('id', 'in.(a,b)')]
        >>> encode_filter(Filter.any_eq(referrer_id="u1", referee_id="u1"))
        [('or', '(referrer_id.eq.u1,referee_id.eq.u1)')]
    """
    if where is None:
        return []
    if where.disjunctive:
        parts = []
        for condition in where.conditions:
            if condition.value is None:
                parts.append(f"{condition.column}.is.null")
            else:
                parts.append(f"{condition.column}.eq.{_quoted(condition.value)}")
        return [("or", f"({','.join(parts)})")]
    return [(condition.column, _condition(condition)) for condition in where.conditions]


def _store_error(exc: SupabaseRequestError, table: str, operation: str) -> StoreError:
    if exc.code == _UNIQUE_VIOLATION or (exc.status_code == 409 and "duplicate" in exc.detail):
        return UniqueViolationError(exc.detail, table=table, operation=operation)
    if exc.code == _FOREIGN_KEY_VIOLATION:
        return ForeignKeyViolationError(exc.detail, table=table, operation=operation)
    return StoreError(str(exc), table=table, operation=operation)


def _rows(response: httpx.Response) -> list[Record]:
    if not response.content:
        return []
    body = response.json()
    if isinstance(body, dict):
        return [body]
    return list(body)


class SupabaseRecordStore:
    """``RecordStorePort`` over PostgREST."""

    def __init__(self, client: SupabaseRestClient) -> None:
        self._client = client

    def insert(self, table: str, record: Mapping[str, Any]) -> Record:
        rows = self._call(
            "insert",
            table,
            "POST",
            json=dict(record),
            prefer="return=representation",
        )
        return self._single(rows, table, "insert")

    def upsert(self, table: str, record: Mapping[str, Any], *, on_conflict: str) -> Record:
        rows = self._call(
            "upsert",
            table,
            "POST",
            params=[("on_conflict", on_conflict)],
            json=dict(record),
            prefer="resolution=merge-duplicates,return=representation",
        )
        return self._single(rows, table, "upsert")

    def select(
        self,
        table: str,
        where: Filter | None = None,
        *,
        columns: Sequence[str] | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Record]:
        if where is not None and where.is_void:
            return []
        params = [("select", ",".join(columns) if columns else "*"), *encode_filter(where)]
        if order_by is not None:
            params.append(("order", f"{order_by}.{'desc' if descending else 'asc'}"))
        return self._call("select", table, "GET", params=params)

    def update(self, table: str, values: Mapping[str, Any], where: Filter) -> list[Record]:
        if where.is_void:
            return []
        return self._call(
            "update",
            table,
            "PATCH",
            params=encode_filter(where),
            json=dict(values),
            prefer="return=representation",
        )

    def delete(self, table: str, where: Filter) -> int:
        if where.is_void:
            return 0
        path = f"/rest/v1/{table}"
        try:
            response = self._client.request(
                "DELETE",
                path,
                params=encode_filter(where),
                prefer="return=minimal,count=exact",
            )
        except SupabaseRequestError as exc:
            raise _store_error(exc, str(table), "delete") from exc
        # Content-Range looks like "*/3" (or "0-2/3")
        content_range = response.headers.get("content-range", "")
        total = content_range.rpartition("/")[2]
        if total.isdigit():
            return int(total)
        return len(_rows(response))

    def _call(
        self,
        operation: str,
        table: str,
        method: str,
        *,
        params: Sequence[tuple[str, str]] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> list[Record]:
        try:
            response = self._client.request(
                method, f"/rest/v1/{table}", params=params, json=json, prefer=prefer
            )
        except SupabaseRequestError as exc:
            raise _store_error(exc, str(table), operation) from exc
        return _rows(response)

    @staticmethod
    def _single(rows: list[Record], table: str, operation: str) -> Record:
        if not rows:
            msg = f"{operation} on {table} returned no row"
            raise StoreError(msg, table=str(table), operation=operation)
        return rows[0]


class SupabaseIdentityProvider:
    """``IdentityProviderPort`` over GoTrue.

    Signup uses the anon key, as a customer-facing signup would; removal goes
    through the admin API and needs the service role key.
    """

    def __init__(self, client: SupabaseRestClient) -> None:
        self._client = client

    def create_identity(
        self,
        email: str,
        password: str,
        metadata: Mapping[str, Any] | None = None,
        *,
        redirect_to: str | None = None,
    ) -> str:
        params = {"redirect_to": redirect_to} if redirect_to else None
        try:
            response = self._client.request(
                "POST",
                "/auth/v1/signup",
                params=params,
                json={"email": email, "password": password, "data": dict(metadata or {})},
                service_role=False,
            )
        except SupabaseRequestError as exc:
            raise IdentityProviderError(exc.detail, status_code=exc.status_code or None) from exc

        body = response.json()
        # With email confirmation on, signup returns the user; otherwise a session.
        user = body.get("user") if isinstance(body.get("user"), dict) else body
        identity_id = user.get("id") if isinstance(user, dict) else None
        if not identity_id:
            msg = "Signup response did not include a user id"
            raise IdentityProviderError(msg, status_code=response.status_code)
        logger.info("identity_created", extra={"identity_id": identity_id})
        return str(identity_id)

    def remove_identity(self, identity_id: str) -> None:
        try:
            self._client.request("DELETE", f"/auth/v1/admin/users/{identity_id}")
        except SupabaseRequestError as exc:
            raise IdentityProviderError(exc.detail, status_code=exc.status_code or None) from exc
        logger.info("identity_removed", extra={"identity_id": identity_id})


class SupabaseFunctionDispatcher:
    """``JobDispatcherPort`` invoking Supabase edge functions."""

    def __init__(self, client: SupabaseRestClient) -> None:
        self._client = client

    def invoke_async_job(self, job_name: str, payload: Mapping[str, Any]) -> None:
        try:
            self._client.request("POST", f"/functions/v1/{job_name}", json=dict(payload))
        except SupabaseRequestError as exc:
            raise JobDispatchError(job_name, exc.detail) from exc
