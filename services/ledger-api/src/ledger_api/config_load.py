import os
from pathlib import Path

from common.utils.config_loader import ConfigLoader

from ledger_api.config_schema import Settings

SERVICE_ROOT = Path(__file__).resolve().parents[2]
CONFIG_ENV_VAR = "LEDGER_API_CONFIG"


def load_settings(env: str | None = None, service_root: Path | None = None) -> Settings:
    """Load settings for ``env`` (defaults to the ``ENV`` environment variable)."""
    env = env if env is not None else os.getenv("ENV")
    return ConfigLoader(service_root=service_root or SERVICE_ROOT).load(
        schema=Settings,
        env=env,
        config_env_var=CONFIG_ENV_VAR,
    )
