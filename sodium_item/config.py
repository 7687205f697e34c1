"""
Configuration for the sodium_item collaborators.

The core functions take everything as explicit arguments. This object only
carries the caller's choices to the resource layer and the CLI.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from sodium_item.keys import KeyPolicy


# Environment variable names
ENV_KEY_POLICY = "SODIUM_ITEM_KEY_POLICY"
ENV_STATE_DIR = "SODIUM_ITEM_STATE_DIR"
ENV_LOG_LEVEL = "SODIUM_ITEM_LOG_LEVEL"

DEFAULT_STATE_DIR = "./sodium-state"
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass
class SodiumConfig:
    """Settings for the resource layer and the CLI."""
    key_policy: KeyPolicy = KeyPolicy.LENIENT
    state_dir: Path = Path(DEFAULT_STATE_DIR)
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, environ: dict = None) -> "SodiumConfig":
        """
        Build a config from environment variables, falling back to defaults.

        Raises:
            ValueError: If a variable holds an unknown key policy or log level.
        """
        env = os.environ if environ is None else environ

        policy_name = env.get(ENV_KEY_POLICY, KeyPolicy.LENIENT.value).strip().lower()
        try:
            policy = KeyPolicy(policy_name)
        except ValueError:
            choices = ", ".join(p.value for p in KeyPolicy)
            raise ValueError(
                f"{ENV_KEY_POLICY} must be one of: {choices}; got {policy_name!r}"
            ) from None

        log_level = env.get(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL).strip().upper()
        if log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"{ENV_LOG_LEVEL} is not a log level: {log_level!r}")

        return cls(
            key_policy=policy,
            state_dir=Path(env.get(ENV_STATE_DIR, DEFAULT_STATE_DIR)),
            log_level=log_level,
        )
