"""Async HTTP client for the tarefas API."""

import logging
from typing import Any

import httpx

from src.client.session import SessionContext
from src.core.config import Constants, settings
from src.core.errors import ClientError, ErrorCategory, classify_client_error
from src.domain.create_models import TaskCreate
from src.domain.task import Task, TaskPriority, TaskStatus
from src.domain.update_models import TaskUpdate
from src.domain.user import UserPublic
from src.models.service_models import AuthResult, DashboardStats, TaskPage, UserStats


logger = logging.getLogger(__name__)


def _extract_message(response: httpx.Response) -> str | None:
    """Read the `message` field of an error body, if there is one."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return None


class TaskAPIClient:
    """Client for the REST API.

    Every call uses a fixed timeout and is not retried. Failures surface as
    ClientError with a user-facing message; a 401 on an authenticated call
    also ends the session.
    """

    def __init__(
        self,
        session: SessionContext,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.session = session
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.api_timeout_seconds
        self._transport = transport

    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        authenticated: bool = True,
        fallback: str = "Request failed",
    ) -> Any:
        headers = self.session.auth_headers() if authenticated else {}

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, json=json, params=params, headers=headers)
        except httpx.HTTPError as e:
            category, message = classify_client_error(e, operation=operation, fallback=fallback)
            logger.warning(
                "API request failed",
                extra={"operation": operation, "category": category.value, "error": str(e)},
            )
            raise ClientError(message) from e

        if response.is_success:
            return response.json()

        category, message = classify_client_error(
            status_code=response.status_code,
            server_message=_extract_message(response),
            operation=operation,
            fallback=fallback,
        )
        logger.info(
            "API request rejected",
            extra={"operation": operation, "status_code": response.status_code, "category": category.value},
        )
        if authenticated and category == ErrorCategory.SESSION_EXPIRED:
            self.session.clear()
        raise ClientError(message, status_code=response.status_code)

    # Users

    async def register(self, *, name: str, email: str, password: str) -> AuthResult:
        """Create an account and start a session with the returned token."""
        body = await self._request(
            "POST",
            "/users/register",
            operation="register",
            json={"name": name, "email": email, "password": password},
            authenticated=False,
            fallback="Registration failed",
        )
        result = AuthResult.model_validate(body)
        self.session.start(result.token, result.user)
        return result

    async def login(self, *, email: str, password: str) -> AuthResult:
        """Authenticate and start a session."""
        body = await self._request(
            "POST",
            "/users/login",
            operation="login",
            json={"email": email, "password": password},
            authenticated=False,
            fallback="Login failed",
        )
        result = AuthResult.model_validate(body)
        self.session.start(result.token, result.user)
        return result

    def logout(self) -> None:
        self.session.clear()

    async def me(self) -> UserPublic:
        body = await self._request("GET", "/users/me", operation="me")
        return UserPublic.model_validate(body)

    async def update_profile(self, *, name: str, email: str) -> UserPublic:
        body = await self._request(
            "PUT",
            "/users/profile",
            operation="update_profile",
            json={"name": name, "email": email},
            fallback="Failed to update profile",
        )
        user = UserPublic.model_validate(body["user"])
        self.session.update_user(user)
        return user

    async def change_password(self, *, current_password: str, new_password: str) -> str:
        body = await self._request(
            "PUT",
            "/users/change-password",
            operation="change_password",
            json={"currentPassword": current_password, "newPassword": new_password},
            fallback="Failed to change password",
        )
        return body["message"]

    async def get_user_stats(self) -> UserStats:
        body = await self._request("GET", "/users/stats", operation="user_stats")
        return UserStats.model_validate(body)

    # Tasks

    async def list_tasks(
        self,
        *,
        status: TaskStatus | None = None,
        priority: TaskPriority | None = None,
        responsible: str | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = Constants.DEFAULT_PAGE_LIMIT,
    ) -> TaskPage:
        """Fetch one page of visible tasks. Unset filters are not sent."""
        params: dict[str, Any] = {"page": page, "limit": limit}
        if status:
            params["status"] = status.value
        if priority:
            params["priority"] = priority.value
        if responsible:
            params["responsible"] = responsible
        if search:
            params["search"] = search

        body = await self._request("GET", "/tasks", operation="list", params=params, fallback="Failed to load tasks")
        return TaskPage.model_validate(body)

    async def get_task(self, task_id: str) -> Task:
        body = await self._request("GET", f"/tasks/{task_id}", operation="get", fallback="Failed to load task")
        return Task.model_validate(body)

    async def create_task(self, data: TaskCreate) -> Task:
        body = await self._request(
            "POST",
            "/tasks",
            operation="create",
            json=data.model_dump(mode="json", by_alias=True),
            fallback="Failed to create task",
        )
        return Task.model_validate(body["task"])

    async def update_task(self, task_id: str, changes: TaskUpdate) -> Task:
        """Send only the fields set on `changes`; explicit nulls are kept."""
        body = await self._request(
            "PUT",
            f"/tasks/{task_id}",
            operation="update",
            json=changes.model_dump(mode="json", by_alias=True, exclude_unset=True),
            fallback="Failed to update task",
        )
        return Task.model_validate(body["task"])

    async def delete_task(self, task_id: str) -> None:
        await self._request("DELETE", f"/tasks/{task_id}", operation="delete", fallback="Failed to delete task")

    async def complete_task(self, task_id: str) -> Task:
        body = await self._request(
            "POST",
            f"/tasks/{task_id}/complete",
            operation="complete",
            fallback="Failed to complete task",
        )
        return Task.model_validate(body["task"])

    async def get_dashboard_stats(self) -> DashboardStats:
        body = await self._request("GET", "/tasks/stats/dashboard", operation="dashboard")
        return DashboardStats.model_validate(body)

    async def health(self) -> bool:
        """True when the server answers its health check."""
        try:
            await self._request("GET", "/health", operation="health", authenticated=False)
        except ClientError:
            return False
        return True
