import logging
import os

from dataclasses import dataclass
from typing import Dict, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://127.0.0.1:7888/proxy/direct/aigc/chat/completions"
DEFAULT_API_KEY = "sk-aicmd"
DEFAULT_MODEL = "deepseek-chat"

CONFIG_DIR_NAME = ".aicmd"
CONFIG_FILE_NAME = "config"

# Config file key -> Config field
FILE_KEYS = {
    "API_KEY": "api_key",
    "API_URL": "api_url",
    "MODEL": "model",
}

# Environment variable -> Config field
ENV_KEYS = {
    "AICMD_API_KEY": "api_key",
    "AICMD_API_URL": "api_url",
    "AICMD_MODEL": "model",
}


@dataclass(frozen=True)
class Config:
    """Settings for the chat-completion endpoint. Resolved once at startup."""

    api_key: str = DEFAULT_API_KEY
    api_url: str = DEFAULT_API_URL
    model: str = DEFAULT_MODEL

    def __repr__(self) -> str:
        key = self.api_key
        masked = f"{key[:4]}...{key[-4:]}" if len(key) > 8 else "****"
        return f"Config(api_key='{masked}', api_url='{self.api_url}', model='{self.model}')"


def config_path(home: Optional[str] = None) -> str:
    """Returns the path of the per-user config file (`~/.aicmd/config`)."""
    if home is None:
        home = os.path.expanduser("~")
    return os.path.join(home, CONFIG_DIR_NAME, CONFIG_FILE_NAME)


def parse_config_lines(content: str) -> Dict[str, str]:
    """
    Parses `KEY=VALUE` lines into a dict of Config field values.

    Blank lines and lines starting with `#` are skipped, as are lines without
    an `=` and keys we don't know about. Later lines win.
    """
    values = {}
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        field_name = FILE_KEYS.get(key.strip())
        if field_name:
            values[field_name] = value.strip()
    return values


def _read_config_file(path: str) -> Dict[str, str]:
    try:
        with open(path, "r", encoding="utf-8") as config_file:
            return parse_config_lines(config_file.read())
    except (OSError, UnicodeDecodeError) as e:
        # A missing or unreadable file just means defaults and environment apply.
        logger.debug("No config file read from %s: %s", path, e)
        return {}


def load_config(
    home: Optional[str] = None, environ: Optional[Mapping[str, str]] = None
) -> Config:
    """
    Resolves the configuration: built-in defaults, then the config file,
    then the `AICMD_*` environment variables (highest precedence).
    """
    if environ is None:
        environ = os.environ

    values = _read_config_file(config_path(home))

    for env_name, field_name in ENV_KEYS.items():
        env_value = environ.get(env_name)
        if env_value is not None:
            values[field_name] = env_value

    config = Config(**values)
    logger.debug("Resolved %r", config)
    return config
