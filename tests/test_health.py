# tests/test_health.py
import inspect
from typing import Any

from fastapi import status


def test_health_check(client: Any) -> None:
    """Health endpoint reports the service as up."""
    response = client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok"}


def test_root_responds(client: Any) -> None:
    """Root endpoint describes the API."""
    response = client.get("/")
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["name"] == "Sugarpot API"
    assert body["docs"] == "/docs"


def test_presence_registry_created_on_startup(client: Any, app: Any) -> None:
    assert len(app.state.presence) == 0


def test_database_routes_run_in_threadpool(app: Any) -> None:
    """Handlers that use the blocking session are plain functions, not coroutines."""
    from fastapi.routing import APIRoute

    routes = [
        route
        for route in app.routes
        if isinstance(route, APIRoute)
        and route.path.startswith(("/api/v1/matches", "/api/v1/messages"))
    ]
    assert len(routes) == 9
    assert not [route.path for route in routes if inspect.iscoroutinefunction(route.endpoint)]
