"""
Configuration storage for Domain Watcher.

The watch configuration is a JSON document, by default at
$XDG_CONFIG_HOME/domain-watcher/config.json (%APPDATA% on Windows).

Secret lookup order (api_key, smtp_pass):
1. macOS Keychain (if on macOS)
2. Environment variable (DOMAIN_WATCHER_API_KEY, DOMAIN_WATCHER_SMTP_PASS)
3. Config file
"""

import json
import os
import re
import subprocess
import sys
from dataclasses import asdict, dataclass, fields
from email.utils import parseaddr
from pathlib import Path

# Keychain service prefix, e.g. "domain-watcher.api_key"
KEYCHAIN_SERVICE_PREFIX = "domain-watcher"

CONFIG_ENV_VAR = "DOMAIN_WATCHER_CONFIG"
SECRET_ENV_VARS = {
    "api_key": "DOMAIN_WATCHER_API_KEY",
    "smtp_pass": "DOMAIN_WATCHER_SMTP_PASS",
}

# Only provider currently supported
DEFAULT_PROVIDER = "whoisjson.com"
SUPPORTED_PROVIDERS = (DEFAULT_PROVIDER,)

DEFAULT_SMTP_PORT = 465
DEFAULT_FREQUENCY = 86400  # 24 hours
MAX_FREQUENCY = 2**32 - 1

_DOMAIN_LABEL = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)$")
_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ConfigError(ValueError):
    """Raised when the configuration document is missing, malformed or invalid."""


def _is_macos() -> bool:
    """Check if running on macOS."""
    return sys.platform == "darwin"


def _keychain_get(service: str, account: str) -> str | None:
    """Get a password from macOS Keychain."""
    try:
        result = subprocess.run(
            ["security", "find-generic-password", "-s", service, "-a", account, "-w"],
            capture_output=True,
            text=True
        )
        if result.returncode == 0 and result.stdout.strip():
            return result.stdout.strip()
    except (subprocess.SubprocessError, FileNotFoundError):
        pass
    return None


def get_config_dir() -> Path:
    """Get the config directory for this app."""
    if os.name == 'nt':  # Windows
        base = Path(os.environ.get('APPDATA', Path.home()))
    else:  # macOS, Linux
        base = Path(os.environ.get('XDG_CONFIG_HOME', Path.home() / '.config'))

    return base / 'domain-watcher'


def get_config_file() -> Path:
    """Get the path to the config file, honoring DOMAIN_WATCHER_CONFIG."""
    if override := os.environ.get(CONFIG_ENV_VAR):
        return Path(override)
    return get_config_dir() / 'config.json'


def resolve_secret(name: str, file_value: str = "") -> str:
    """
    Resolve a secret config value.

    Lookup order:
    1. macOS Keychain (service "domain-watcher.<name>")
    2. Environment variable
    3. The value stored in the config file
    """
    if _is_macos():
        if value := _keychain_get(f"{KEYCHAIN_SERVICE_PREFIX}.{name}", name):
            return value

    env_var = SECRET_ENV_VARS.get(name)
    if env_var and (value := os.environ.get(env_var)):
        return value

    return file_value


def get_secret_source(name: str, file_value: str = "") -> str | None:
    """Determine where a secret comes from (for display purposes)."""
    if _is_macos():
        if _keychain_get(f"{KEYCHAIN_SERVICE_PREFIX}.{name}", name):
            return "macOS Keychain"

    env_var = SECRET_ENV_VARS.get(name)
    if env_var and os.environ.get(env_var):
        return "environment variable"

    if file_value:
        return "config file"

    return None


# =============================================================================
# Validation
# =============================================================================

def is_valid_domain(domain: str) -> bool:
    """Check that a name is a syntactically plausible domain (e.g. "example.com")."""
    if not domain or len(domain) > 253:
        return False
    labels = domain.rstrip(".").split(".")
    if len(labels) < 2:
        return False
    if not all(_DOMAIN_LABEL.match(label) for label in labels):
        return False
    # TLDs are never all-numeric
    return not labels[-1].isdigit()


def is_valid_email(address: str) -> bool:
    """Check that an address parses as a single plain email address."""
    if not address:
        return False
    _, parsed = parseaddr(address)
    return parsed == address and bool(_EMAIL.match(address))


@dataclass(frozen=True)
class WatchConfig:
    """Settings for one watch. Immutable once loaded."""

    smtp_server: str
    smtp_port: int
    smtp_user: str
    smtp_pass: str
    domain_name: str
    email: str
    log: bool
    provider: str
    api_key: str
    frequency: int  # seconds

    @property
    def interval(self) -> float:
        """Seconds to wait between availability checks."""
        return float(self.frequency)

    def validate(self) -> None:
        """Raise ConfigError if any field is unusable."""
        if not self.smtp_server:
            raise ConfigError("smtp_server must not be empty")
        if not 0 < self.smtp_port <= 65535:
            raise ConfigError(f"smtp_port must be between 1 and 65535, got {self.smtp_port}")
        if not is_valid_email(self.smtp_user):
            raise ConfigError(f"Invalid sender email address: {self.smtp_user!r}")
        if not is_valid_email(self.email):
            raise ConfigError(f"Invalid recipient email address: {self.email!r}")
        if not is_valid_domain(self.domain_name):
            raise ConfigError(f"Invalid domain name: {self.domain_name!r}")
        if not self.api_key:
            raise ConfigError("api_key must not be empty")
        if self.provider not in SUPPORTED_PROVIDERS:
            raise ConfigError(
                f"Unsupported provider {self.provider!r}. Supported: {', '.join(SUPPORTED_PROVIDERS)}"
            )
        if not 0 < self.frequency <= MAX_FREQUENCY:
            raise ConfigError(
                f"frequency must be between 1 and {MAX_FREQUENCY} seconds, got {self.frequency}"
            )

    @classmethod
    def from_dict(cls, data: dict) -> "WatchConfig":
        """
        Build and validate a config from a parsed document.

        Secrets are resolved through resolve_secret(), so they may be left
        empty in the document when they live in the keychain or environment.
        """
        if not isinstance(data, dict):
            raise ConfigError("Config document must be a JSON object")

        missing = [f.name for f in fields(cls) if f.name not in data]
        if missing:
            raise ConfigError(f"Missing config fields: {', '.join(missing)}")

        values = {}
        for f in fields(cls):
            value = data[f.name]
            if f.type is bool:
                if not isinstance(value, bool):
                    raise ConfigError(f"{f.name} must be true or false")
            elif f.type is int:
                # bool is a subclass of int
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ConfigError(f"{f.name} must be an integer")
            elif not isinstance(value, str):
                raise ConfigError(f"{f.name} must be a string")
            values[f.name] = value

        values["domain_name"] = values["domain_name"].strip().lower().rstrip(".")
        values["api_key"] = resolve_secret("api_key", values["api_key"])
        values["smtp_pass"] = resolve_secret("smtp_pass", values["smtp_pass"])

        config = cls(**values)
        config.validate()
        return config

    def to_dict(self) -> dict:
        """Serialize to the on-disk document layout."""
        return asdict(self)


def default_config() -> WatchConfig:
    """Placeholder config written before the setup wizard runs."""
    return WatchConfig(
        smtp_server="",
        smtp_port=DEFAULT_SMTP_PORT,
        smtp_user="",
        smtp_pass="",
        domain_name="",
        email="",
        log=False,
        provider=DEFAULT_PROVIDER,
        api_key="",
        frequency=DEFAULT_FREQUENCY,
    )


def load_config(path: Path | None = None) -> WatchConfig:
    """Load and validate the config document. Raises ConfigError."""
    config_file = path or get_config_file()

    try:
        data = json.loads(config_file.read_text())
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {config_file}") from None
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {config_file} is not valid JSON: {e}") from e
    except OSError as e:
        raise ConfigError(f"Could not read config file {config_file}: {e}") from e

    return WatchConfig.from_dict(data)


def save_config(config: WatchConfig, path: Path | None = None) -> Path:
    """Write the config document, creating its directory. Returns the path."""
    config_file = path or get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config.to_dict(), indent=2))
    return config_file


def mask_secret(value: str) -> str:
    """Mask a secret for display."""
    if len(value) > 8:
        return value[:4] + "*" * (len(value) - 8) + value[-4:]
    elif len(value) > 4:
        return value[:2] + "*" * (len(value) - 2)
    else:
        return "*" * len(value)
