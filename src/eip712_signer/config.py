"""
Signer Configuration Management

Loads signing configuration from environment variables (optionally from a
``.env`` file via python-dotenv).

Environment Variables:
    - EIP712_PRIVATE_KEY: Signing key (0x-prefixed hex).  ``EVM_PRIVATE_KEY``
      is read as a fallback.
    - EIP712_DEADLINE_DURATION: Seconds added to the current time when a
      deadline is injected (default 3600).
    - EIP712_EXTRA_FIELD_POLICY: ``drop`` (default) or ``error`` for message
      fields the type does not declare.
"""

import os
from typing import Optional

import dotenv
from pydantic import BaseModel, Field, SecretStr, ValidationError

from .encoding.reconcile import ExtraFieldPolicy
from .engine.exceptions import ConfigurationError

DEFAULT_DEADLINE_DURATION = 3600


class SignerSettings(BaseModel):
    """Signing service configuration."""
    private_key: Optional[SecretStr] = Field(default=None, description="Signing key; never logged")
    deadline_duration: int = Field(
        default=DEFAULT_DEADLINE_DURATION, ge=0, description="Default deadline offset in seconds"
    )
    extra_field_policy: ExtraFieldPolicy = Field(
        default=ExtraFieldPolicy.DROP, description="Handling of undeclared message fields"
    )


def get_private_key_from_env() -> Optional[str]:
    """
    Load the signing key from environment variables.

    Returns:
        str: Private key from environment, or None if not configured

    Note:
        The private key should be stored securely in environment variables
        and never committed to version control.
    """
    return os.getenv("EIP712_PRIVATE_KEY") or os.getenv("EVM_PRIVATE_KEY")


def load_settings(env_file: Optional[str] = None) -> SignerSettings:
    """
    Build ``SignerSettings`` from the environment.

    Args:
        env_file: Optional path of a ``.env`` file; when omitted python-dotenv
            searches for one.  Variables already set in the process
            environment take precedence.

    Raises:
        ConfigurationError: A variable is present but invalid.
    """
    dotenv.load_dotenv(env_file)

    values = {}
    private_key = get_private_key_from_env()
    if private_key:
        values["private_key"] = private_key
    duration = os.getenv("EIP712_DEADLINE_DURATION")
    if duration:
        values["deadline_duration"] = duration
    policy = os.getenv("EIP712_EXTRA_FIELD_POLICY")
    if policy:
        values["extra_field_policy"] = policy.strip().lower()

    try:
        return SignerSettings(**values)
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors())
        raise ConfigurationError(f"Invalid signer configuration: {fields}") from None
