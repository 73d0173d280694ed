"""Tests for API key verification."""
import pytest
from scoreboard.errors import ConfigurationError
from scoreboard.services.auth import ApiKeyVerifier, get_api_key_hash
from scoreboard.settings import Settings


def test_plain_key_requires_exact_match():
    verifier = ApiKeyVerifier("s3cret")
    assert verifier.verify("s3cret")
    assert not verifier.verify("S3cret")
    assert not verifier.verify("s3cret ")
    assert not verifier.verify("")
    assert not verifier.verify(None)


def test_hashed_key():
    verifier = ApiKeyVerifier(api_key_hash=get_api_key_hash("s3cret"))
    assert verifier.verify("s3cret")
    assert not verifier.verify("wrong")


def test_hash_takes_precedence_over_plain_key():
    verifier = ApiKeyVerifier("plain", get_api_key_hash("hashed"))
    assert verifier.verify("hashed")
    assert not verifier.verify("plain")


def test_unconfigured_verifier_rejects_everything():
    verifier = ApiKeyVerifier()
    assert not verifier.configured
    assert not verifier.verify("anything")
    with pytest.raises(ConfigurationError):
        verifier.check()


def test_check_rejects_unknown_hash_format():
    with pytest.raises(ConfigurationError):
        ApiKeyVerifier(api_key_hash="not-a-hash").check()


def test_from_settings():
    verifier = ApiKeyVerifier.from_settings(
        Settings(SCOREBOARD_API_KEY="from-env", SCOREBOARD_API_KEY_HASH=None)
    )
    verifier.check()
    assert verifier.verify("from-env")
