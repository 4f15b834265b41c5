"""
Unit tests for starbridge.errors.normalize_error.

Known command errors keep their message and context; anything unexpected is
reduced to "<Subsystem> error" whatever the environment.
"""

import logging

import pytest
from pydantic import ValidationError

from starbridge.api.schemas.fuel import RefuelPayload
from starbridge.errors import AuthorizationError, DomainError, normalize_error


class TestNormalizeError:
    def test_domain_error_keeps_message_and_context(self):
        envelope = normalize_error(DomainError("Insufficient fuel", fuelNeeded=20), "Jump", "initiateJump")
        assert envelope == {
            "message": "Insufficient fuel",
            "code": "precondition",
            "event": "initiateJump",
            "fuelNeeded": 20,
        }

    def test_authorization_error_code(self):
        envelope = normalize_error(AuthorizationError("Only engineer can refuel"), "Fuel", "refuel")
        assert envelope["code"] == "forbidden"

    def test_validation_error_names_the_field(self):
        with pytest.raises(ValidationError) as info:
            RefuelPayload.model_validate({"tons": 5})
        envelope = normalize_error(info.value, "Fuel", "refuel")
        assert envelope["code"] == "invalid_payload"
        assert envelope["message"].startswith("Invalid payload: sourceId")

    @pytest.mark.parametrize("environment", ["development", "test", "production"])
    def test_unexpected_error_text_never_reaches_client(self, environment, monkeypatch, caplog):
        monkeypatch.setenv("ENVIRONMENT", environment)
        exc = RuntimeError("sqlite3.OperationalError: database /var/lib/secret.db is locked")

        with caplog.at_level(logging.ERROR, logger="starbridge.errors"):
            envelope = normalize_error(exc, "Fuel", "getFuelStatus")

        assert envelope == {"message": "Fuel error", "code": "internal", "event": "getFuelStatus"}
        # Details stay in the server log
        assert "secret.db" in caplog.text
