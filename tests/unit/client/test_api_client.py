"""Tests for the HTTP API client using httpx.MockTransport."""

import json

import httpx
import pytest

from src.client.api_client import TaskAPIClient
from src.client.session import SessionContext
from src.core.errors import ClientError
from src.domain.create_models import TaskCreate
from src.domain.task import TaskStatus
from src.domain.update_models import TaskUpdate
from src.domain.user import UserPublic


DANA = UserPublic(id="5", name="Dana", email="dana@example.com")

TASK_BODY = {
    "id": "10",
    "title": "Pay rent",
    "description": "Transfer to landlord",
    "status": "pendente",
    "priority": "media",
    "creator": {"id": "5", "name": "Dana", "email": "dana@example.com"},
    "responsible": None,
    "dueDate": "2030-01-01T10:00:00Z",
    "completedAt": None,
    "tags": [],
    "createdAt": "2026-10-01T00:00:00Z",
    "updatedAt": "2026-10-01T00:00:00Z",
    "isOverdue": False,
    "daysUntilDue": 1171,
}


def _client(handler, session: SessionContext | None = None) -> TaskAPIClient:
    session = session or SessionContext()
    return TaskAPIClient(session, base_url="http://testserver", transport=httpx.MockTransport(handler))


def _logged_in_session() -> SessionContext:
    session = SessionContext()
    session.start("token-1", DANA)
    return session


@pytest.mark.unit
class TestAuthentication:
    """Tests for login, register and session handling."""

    async def test_login_starts_session(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/users/login"
            assert "Authorization" not in request.headers
            assert json.loads(request.content) == {"email": "dana@example.com", "password": "secret123"}
            return httpx.Response(200, json={"token": "token-1", "user": DANA.model_dump()})

        client = _client(handler)
        result = await client.login(email="dana@example.com", password="secret123")

        assert result.user == DANA
        assert client.session.token == "token-1"

    async def test_bad_credentials_surface_server_message(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"message": "Invalid credentials"})

        client = _client(handler)
        with pytest.raises(ClientError) as exc_info:
            await client.login(email="dana@example.com", password="wrong")

        assert exc_info.value.message == "Invalid credentials"
        assert exc_info.value.status_code == 400
        assert not client.session.is_authenticated

    async def test_unauthorized_clears_session(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"message": "Access token required"})

        client = _client(handler, _logged_in_session())
        with pytest.raises(ClientError, match="Session expired. Please log in again."):
            await client.list_tasks()

        assert not client.session.is_authenticated

    async def test_bearer_token_is_sent(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Authorization"] == "Bearer token-1"
            return httpx.Response(200, json=DANA.model_dump())

        client = _client(handler, _logged_in_session())

        assert await client.me() == DANA


@pytest.mark.unit
class TestTaskCalls:
    """Tests for task endpoints."""

    async def test_list_tasks_sends_only_set_filters(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert dict(request.url.params) == {"page": "2", "limit": "5", "status": "concluida", "search": "rent"}
            return httpx.Response(200, json={"tasks": [TASK_BODY], "totalPages": 3, "currentPage": 2, "total": 11})

        client = _client(handler, _logged_in_session())
        page = await client.list_tasks(status=TaskStatus.COMPLETED, search="rent", page=2, limit=5)

        assert page.total == 11
        assert page.total_pages == 3
        assert page.tasks[0].title == "Pay rent"

    async def test_create_task_sends_camel_case(self):
        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            assert body["dueDate"].startswith("2030-01-01T10:00:00")
            return httpx.Response(201, json={"message": "Task created successfully", "task": TASK_BODY})

        client = _client(handler, _logged_in_session())
        task = await client.create_task(
            TaskCreate.model_validate(
                {"title": "Pay rent", "description": "Transfer to landlord", "dueDate": "2030-01-01T10:00:00Z"}
            )
        )

        assert task.id == "10"

    async def test_update_sends_only_set_fields_including_nulls(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert json.loads(request.content) == {"status": "em-andamento", "dueDate": None}
            return httpx.Response(200, json={"message": "Task updated successfully", "task": TASK_BODY})

        client = _client(handler, _logged_in_session())
        await client.update_task("10", TaskUpdate.model_validate({"status": "em-andamento", "dueDate": None}))

    async def test_forbidden_update_gets_permission_message(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, json={"message": "Only the creator can edit title"})

        client = _client(handler, _logged_in_session())
        with pytest.raises(ClientError, match="You don't have permission to edit this task."):
            await client.update_task("10", TaskUpdate(title="New"))

    async def test_delete_not_found_passes_server_message(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"message": "Task not found or you don't have permission to delete it"})

        client = _client(handler, _logged_in_session())
        with pytest.raises(ClientError, match="Task not found"):
            await client.delete_task("10")


@pytest.mark.unit
class TestTransportFailures:
    """Tests for network-level failures."""

    async def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        client = _client(handler, _logged_in_session())
        with pytest.raises(ClientError) as exc_info:
            await client.list_tasks()

        assert exc_info.value.message == "Request timed out. Check your connection."
        assert exc_info.value.status_code is None
        assert client.session.is_authenticated

    async def test_connection_refused(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        client = _client(handler)
        with pytest.raises(ClientError, match="Could not connect to the server."):
            await client.login(email="dana@example.com", password="secret123")

    async def test_health_reports_false_when_unreachable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        assert await _client(handler).health() is False
