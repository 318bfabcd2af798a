"""
Signer Configuration Test Suite

Usage:
    pytest tests/test_config.py -v
"""

import pytest

from test_mocks import MOCK_OTHER_ADDRESS, MOCK_OTHER_PRIVATE_KEY, MOCK_OWNER_ADDRESS, MOCK_OWNER_PRIVATE_KEY

from eip712_signer.config import DEFAULT_DEADLINE_DURATION, SignerSettings, load_settings
from eip712_signer.encoding.reconcile import ExtraFieldPolicy
from eip712_signer.engine.exceptions import ConfigurationError
from eip712_signer.signing import SigningService

ENV_VARS = ("EIP712_PRIVATE_KEY", "EVM_PRIVATE_KEY", "EIP712_DEADLINE_DURATION", "EIP712_EXTRA_FIELD_POLICY")


@pytest.fixture
def clean_env(monkeypatch):
    """Start from an environment without signer variables; restore it afterwards."""
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch


@pytest.fixture
def env_file(tmp_path):
    return str(tmp_path / ".env")


class TestLoadSettings:
    """Environment-driven settings."""

    def test_defaults(self, clean_env, env_file):
        settings = load_settings(env_file)
        assert settings.private_key is None
        assert settings.deadline_duration == DEFAULT_DEADLINE_DURATION
        assert settings.extra_field_policy is ExtraFieldPolicy.DROP

    def test_reads_variables(self, clean_env, env_file):
        clean_env.setenv("EIP712_PRIVATE_KEY", MOCK_OWNER_PRIVATE_KEY)
        clean_env.setenv("EIP712_DEADLINE_DURATION", "600")
        clean_env.setenv("EIP712_EXTRA_FIELD_POLICY", "ERROR")
        settings = load_settings(env_file)
        assert settings.private_key.get_secret_value() == MOCK_OWNER_PRIVATE_KEY
        assert settings.deadline_duration == 600
        assert settings.extra_field_policy is ExtraFieldPolicy.ERROR

    def test_evm_private_key_fallback(self, clean_env, env_file):
        clean_env.setenv("EVM_PRIVATE_KEY", MOCK_OTHER_PRIVATE_KEY)
        assert load_settings(env_file).private_key.get_secret_value() == MOCK_OTHER_PRIVATE_KEY

    def test_primary_variable_wins(self, clean_env, env_file):
        clean_env.setenv("EIP712_PRIVATE_KEY", MOCK_OWNER_PRIVATE_KEY)
        clean_env.setenv("EVM_PRIVATE_KEY", MOCK_OTHER_PRIVATE_KEY)
        assert load_settings(env_file).private_key.get_secret_value() == MOCK_OWNER_PRIVATE_KEY

    def test_reads_dotenv_file(self, clean_env, tmp_path):
        path = tmp_path / ".env"
        path.write_text(f"EIP712_PRIVATE_KEY={MOCK_OWNER_PRIVATE_KEY}\nEIP712_DEADLINE_DURATION=120\n")
        settings = load_settings(str(path))
        assert settings.deadline_duration == 120
        assert settings.private_key.get_secret_value() == MOCK_OWNER_PRIVATE_KEY

    @pytest.mark.parametrize("name, value", [
        ("EIP712_DEADLINE_DURATION", "-5"),
        ("EIP712_DEADLINE_DURATION", "soon"),
        ("EIP712_EXTRA_FIELD_POLICY", "ignore"),
    ])
    def test_invalid_values(self, clean_env, env_file, name, value):
        clean_env.setenv(name, value)
        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(env_file)
        assert value not in str(exc_info.value)

    def test_key_is_not_in_repr(self):
        settings = SignerSettings(private_key=MOCK_OWNER_PRIVATE_KEY)
        assert MOCK_OWNER_PRIVATE_KEY not in repr(settings)


class TestServiceFromSettings:
    """SigningService construction from settings."""

    def test_from_explicit_settings(self):
        settings = SignerSettings(private_key=MOCK_OWNER_PRIVATE_KEY, deadline_duration=30)
        service = SigningService.from_settings(settings, clock=lambda: 1000)
        assert service.signer_address == MOCK_OWNER_ADDRESS
        assert service.generate_deadline() == 1030

    def test_from_environment(self, clean_env):
        clean_env.setenv("EIP712_PRIVATE_KEY", MOCK_OTHER_PRIVATE_KEY)
        assert SigningService.from_settings().signer_address == MOCK_OTHER_ADDRESS

    def test_missing_key(self):
        with pytest.raises(ConfigurationError, match="Private key not provided"):
            SigningService.from_settings(SignerSettings())
