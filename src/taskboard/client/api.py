"""HTTP client for the task board API.

The client holds no ambient credentials: a ``ClientConfig`` is given at
construction and a ``Session`` is passed to every call.

    client = TaskboardClient(ClientConfig(base_url="http://localhost:8000/api"))
    session = Session()
    client.login(session, "ada@example.com", "secret1")
    tasks = client.list_tasks(session, status="todo")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generator, List, Mapping, Optional, Tuple

import httpx

from ..api.schemas import DragResult, TaskOut, UserOut

logger = logging.getLogger(__name__)

Task = TaskOut
User = UserOut


@dataclass
class Session:
    """Credential holder for one signed-in user."""

    token: Optional[str] = None
    user: Optional[User] = None

    @property
    def authenticated(self) -> bool:
        return self.token is not None

    def clear(self) -> None:
        self.token = None
        self.user = None


def bearer_credentials(session: Session) -> Dict[str, str]:
    """Default credential hook: ``Authorization: Bearer <token>`` when signed in."""
    if session.token:
        return {"Authorization": f"Bearer {session.token}"}
    return {}


@dataclass(frozen=True)
class ClientConfig:
    """
    Connection settings for ``TaskboardClient``.

    - base_url: API root including the ``/api`` prefix
    - timeout: per-request timeout in seconds
    - credential_hook: maps a session to the headers that authenticate it
    """

    base_url: str = "http://localhost:8000/api"
    timeout: float = 10.0
    credential_hook: Callable[[Session], Mapping[str, str]] = field(default=bearer_credentials)


class ApiError(Exception):
    """A non-success response from the API."""

    def __init__(self, status_code: int, message: str, errors: Optional[List[Any]] = None) -> None:
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.errors = errors or []


class UnauthorizedError(ApiError):
    """The session's credentials were missing, invalid or expired."""


class SessionAuth(httpx.Auth):
    """Inject the session's credentials into each request via the config hook."""

    def __init__(self, session: Session, hook: Callable[[Session], Mapping[str, str]]) -> None:
        self._session = session
        self._hook = hook

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        for name, value in self._hook(self._session).items():
            request.headers[name] = value
        yield request


@dataclass(frozen=True)
class ReorderResult:
    updated: List[Task]
    task: Task


class TaskboardClient:
    """
    Synchronous client for the task board REST API.

    ``http_client`` may be any ``httpx.Client`` (for example FastAPI's
    ``TestClient``); by default one is created from ``config``.
    """

    def __init__(self, config: Optional[ClientConfig] = None, http_client: Optional[httpx.Client] = None) -> None:
        self.config = config or ClientConfig()
        self._owns_http = http_client is None
        self._http = http_client or httpx.Client(
            timeout=self.config.timeout,
            headers={"Content-Type": "application/json"},
        )

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "TaskboardClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _url(self, path: str) -> str:
        return self.config.base_url.rstrip("/") + path

    def _request(
        self,
        method: str,
        path: str,
        session: Session,
        *,
        json: Any = None,
        params: Optional[Mapping[str, str]] = None,
        allow_empty: bool = False,
    ) -> Optional[Dict[str, Any]]:
        response = self._http.request(
            method,
            self._url(path),
            json=json,
            params=params,
            auth=SessionAuth(session, self.config.credential_hook),
            timeout=self.config.timeout,
        )
        if response.status_code == httpx.codes.UNAUTHORIZED:
            # Credentials are no good any more; drop them
            session.clear()
            raise UnauthorizedError(response.status_code, *_error_details(response))
        if response.is_error:
            raise ApiError(response.status_code, *_error_details(response))
        if response.status_code == httpx.codes.NO_CONTENT or not response.content:
            if allow_empty:
                return None
            raise ApiError(response.status_code, "Empty response")
        return response.json()

    # Auth endpoints

    def register(self, session: Session, name: str, email: str, password: str) -> User:
        body = self._request("POST", "/auth/register", session, json={"name": name, "email": email, "password": password})
        return self._sign_in(session, body)

    def login(self, session: Session, email: str, password: str) -> User:
        body = self._request("POST", "/auth/login", session, json={"email": email, "password": password})
        return self._sign_in(session, body)

    def get_profile(self, session: Session) -> User:
        body = self._request("GET", "/auth/me", session)
        session.user = User.model_validate(body["data"]["user"])
        return session.user

    def _sign_in(self, session: Session, body: Dict[str, Any]) -> User:
        session.token = body["token"]
        session.user = User.model_validate(body["data"]["user"])
        logger.debug("Signed in as user %s", session.user.id)
        return session.user

    # Task endpoints

    def list_tasks(
        self,
        session: Session,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> List[Task]:
        params = {k: v for k, v in (("status", status), ("priority", priority), ("sort", sort)) if v}
        body = self._request("GET", "/tasks", session, params=params)
        return [Task.model_validate(t) for t in body["data"]["tasks"]]

    def get_task(self, session: Session, task_id: int) -> Task:
        body = self._request("GET", f"/tasks/{task_id}", session)
        return Task.model_validate(body["data"]["task"])

    def create_task(self, session: Session, task_data: Mapping[str, Any]) -> Task:
        body = self._request("POST", "/tasks", session, json=dict(task_data))
        return Task.model_validate(body["data"]["task"])

    def update_task(self, session: Session, task_id: int, task_data: Mapping[str, Any]) -> Task:
        body = self._request("PUT", f"/tasks/{task_id}", session, json=dict(task_data))
        return Task.model_validate(body["data"]["task"])

    def delete_task(self, session: Session, task_id: int) -> None:
        self._request("DELETE", f"/tasks/{task_id}", session, allow_empty=True)

    def reorder_tasks(self, session: Session, drag: DragResult) -> ReorderResult:
        body = self._request("PUT", "/tasks/reorder", session, json=drag.model_dump(mode="json", by_alias=True))
        data = body["data"]
        return ReorderResult(
            updated=[Task.model_validate(t) for t in data["updated"]],
            task=Task.model_validate(data["task"]),
        )


def _error_details(response: httpx.Response) -> Tuple[str, List[Any]]:
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or "Request failed", []
    if not isinstance(body, dict):
        return response.reason_phrase or "Request failed", []
    return str(body.get("message") or response.reason_phrase or "Request failed"), body.get("errors") or []
