"""Unit tests for API exception handlers."""

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from relish.shared.exceptions import (
    DecryptionError,
    DuplicateIndexError,
    NotFoundError,
    ValidationError,
)


@pytest.fixture
def client() -> TestClient:
    from relish.main import create_app

    app = create_app()
    existing_id = uuid4()

    @app.get("/boom/{kind}")
    async def boom(kind: str) -> None:
        if kind == "validation":
            raise ValidationError("full_name is required", details={"field": "full_name"})
        if kind == "not-found":
            raise NotFoundError("contact", "123")
        if kind == "duplicate":
            raise DuplicateIndexError("contact", "email", existing_id)
        if kind == "decryption":
            raise DecryptionError("authentication_failed", "contact.email")
        raise RuntimeError("unexpected")

    return TestClient(app, raise_server_exceptions=False)


class TestErrorMapping:
    """Test typed errors map to HTTP statuses."""

    def test_validation_error_is_422(self, client):
        response = client.get("/boom/validation")
        assert response.status_code == 422
        assert response.json()["details"] == {"field": "full_name"}

    def test_not_found_is_404(self, client):
        response = client.get("/boom/not-found")
        assert response.status_code == 404
        assert response.json()["message"] == "contact not found"

    def test_duplicate_index_is_409(self, client):
        response = client.get("/boom/duplicate")
        assert response.status_code == 409
        assert response.json()["details"] == {"entity": "contact", "field": "email"}

    def test_decryption_error_is_generic_500(self, client):
        response = client.get("/boom/decryption")
        assert response.status_code == 500
        assert "contact.email" not in response.text

    def test_unexpected_error_is_generic_500(self, client):
        response = client.get("/boom/other")
        assert response.status_code == 500
        assert response.json()["error"] == "internal_error"
