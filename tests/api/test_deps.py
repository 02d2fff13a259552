"""
Tests for bizframe.api — app factory, per-request registry dependency and
problem responses.
"""

from __future__ import annotations

import pickle

import pytest
from fastapi.testclient import TestClient

from bizframe.api import create_app
from bizframe.api.deps import Registry, new_session_id
from bizframe.core.errors import ResourceNotFound, ServiceNotFound


@pytest.fixture
def app(settings, catalog, backend):
    app = create_app(settings=settings, catalog=catalog, session_backend=backend)

    @app.post("/view/{name}")
    def set_view(name: str, registry: Registry) -> dict[str, str]:
        registry.current_view_name = name
        return {"view": name}

    @app.get("/view")
    def get_view(registry: Registry) -> dict[str, str]:
        return {"view": registry.current_view_name}

    @app.get("/echo")
    def echo(registry: Registry) -> dict[str, str]:
        return registry.client_proxy.form_inputs()

    @app.get("/missing-resource")
    def missing_resource(registry: Registry) -> dict[str, str]:
        registry.path_for("demo.Nope")
        return {}

    @app.get("/missing-service")
    def missing_service(registry: Registry) -> dict[str, str]:
        registry.get_service("nope")
        return {}

    return app


@pytest.fixture
def client(app):
    return TestClient(app)


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "version": "0.1.0"}


class TestSessionCookie:
    def test_new_session_sets_cookie(self, client, settings):
        response = client.get("/health")
        assert settings.session_cookie in response.cookies

    def test_session_survives_requests(self, client, backend, settings):
        assert client.post("/view/demo.OrderView").json() == {"view": "demo.OrderView"}
        assert client.get("/view").json() == {"view": "demo.OrderView"}

        session_id = client.cookies[settings.session_cookie]
        assert pickle.loads(backend.load(session_id))["CVN"] == "demo.OrderView"

    def test_valid_cookie_kept(self, client, settings):
        session_id = new_session_id()
        client.cookies.set(settings.session_cookie, session_id)

        response = client.get("/health")

        assert settings.session_cookie not in response.cookies

    def test_invalid_cookie_replaced(self, client, settings):
        client.cookies.set(settings.session_cookie, "../../etc/passwd")

        response = client.get("/health")

        assert response.cookies[settings.session_cookie] != "../../etc/passwd"

    def test_mutating_request_persisted_once(self, client, backend):
        client.post("/view/demo.OrderView")
        assert backend.saves == 1

    def test_clean_request_not_persisted(self, client, backend):
        client.get("/view")
        assert backend.saves == 0


class TestRegistryDependency:
    def test_query_params_become_form_inputs(self, client):
        assert client.get("/echo", params={"fld_name": "ACME"}).json() == {"fld_name": "ACME"}


class TestProblemResponses:
    def test_resource_not_found_is_404(self, client):
        response = client.get("/missing-resource")

        assert response.status_code == 404
        body = response.json()
        assert body["title"] == ResourceNotFound.__name__
        assert body["category"] == "RESOURCE"
        assert "demo.Nope" in body["detail"]
        assert body["context"] == {}

    def test_service_not_found_is_500(self, client):
        response = client.get("/missing-service")

        assert response.status_code == 500
        body = response.json()
        assert body["title"] == ServiceNotFound.__name__
        assert body["category"] == "SERVICE"
        assert "service.nope" not in body["detail"]

    def test_debug_includes_context(self, settings, catalog, backend):
        app = create_app(settings=settings, catalog=catalog, session_backend=backend, debug=True)

        @app.get("/missing-service")
        def missing_service(registry: Registry) -> dict[str, str]:
            registry.get_service("nope")
            return {}

        body = TestClient(app).get("/missing-service").json()

        assert "service.nope" in body["detail"]
        assert body["context"]["service"] == "service.nope"
