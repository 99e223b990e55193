"""
Unit tests for configuration, tokens and logging setup.
"""

import json
import logging
import uuid

import jwt
import pytest

from music_library.core.config import Settings, settings
from music_library.core.errors import AuthError, ConfigurationError
from music_library.core.logging_config import JSONFormatter, PACKAGE_LOGGER, setup_logging
from music_library.core.security import Identity, create_access_token, decode_access_token


class TestSettings:
    """Tests for Settings startup checks."""

    @pytest.mark.unit
    def test_missing_database_url(self):
        with pytest.raises(ConfigurationError):
            Settings(database_url="").check_startup()

    @pytest.mark.unit
    def test_production_refuses_dev_secret(self):
        cfg = Settings(database_url="sqlite://", env="production", jwt_secret="dev-secret")
        with pytest.raises(ConfigurationError):
            cfg.check_startup()

    @pytest.mark.unit
    def test_spotify_credentials_required(self):
        with pytest.raises(ConfigurationError) as exc:
            Settings(spotify_client_id="id", spotify_client_secret="").require_spotify()
        assert exc.value.message == "Spotify credentials not configured"


class TestAccessToken:
    """Tests for create_access_token / decode_access_token."""

    @pytest.mark.unit
    def test_round_trip_carries_profile_claims(self):
        identity = Identity(id=uuid.uuid4(), spotify_id="sp1", username="abel", display_name="Abel")
        decoded = decode_access_token(create_access_token(identity))
        assert decoded == identity

    @pytest.mark.unit
    def test_expired_token(self):
        payload = {
            "iss": settings.jwt_issuer,
            "aud": settings.jwt_audience,
            "sub": str(uuid.uuid4()),
            "exp": 1,
        }
        token = jwt.encode(payload, settings.jwt_secret, algorithm="HS256")
        with pytest.raises(AuthError) as exc:
            decode_access_token(token)
        assert exc.value.message == "token_expired"

    @pytest.mark.unit
    def test_wrong_secret(self):
        identity = Identity(id=uuid.uuid4(), spotify_id="sp1", username="abel", display_name="Abel")
        payload = jwt.decode(
            create_access_token(identity), settings.jwt_secret, algorithms=["HS256"], audience=settings.jwt_audience
        )
        forged = jwt.encode(payload, "another-secret", algorithm="HS256")
        with pytest.raises(AuthError) as exc:
            decode_access_token(forged)
        assert exc.value.status_code == 401


class TestLogging:
    """Tests for setup_logging and the JSON formatter."""

    @pytest.fixture
    def package_logger(self):
        logger = logging.getLogger(PACKAGE_LOGGER)
        handlers, level, propagate = logger.handlers[:], logger.level, logger.propagate
        yield logger
        logger.handlers = handlers
        logger.setLevel(level)
        logger.propagate = propagate

    @pytest.mark.unit
    def test_setup_installs_single_handler(self, package_logger):
        setup_logging("svc")
        setup_logging("svc")
        assert len(package_logger.handlers) == 1
        assert package_logger.propagate is False

    @pytest.mark.unit
    def test_json_formatter(self):
        record = logging.LogRecord("music_library.x", logging.INFO, __file__, 1, "hello %s", ("world",), None)
        entry = json.loads(JSONFormatter("svc").format(record))
        assert entry["service"] == "svc"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "music_library.x"
        assert entry["message"] == "hello world"
