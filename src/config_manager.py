import json
import logging
import os
import urllib.parse
from dataclasses import dataclass, field
from pathlib import Path

from errors import ConfigurationError


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "environments.json"
DEFAULT_ENVIRONMENT = "production"
DEFAULT_TIMEOUT_MS = 30000
DEFAULT_RETRIES = 3

# Resolution order after the CLI override
ENV_VARIABLES = ("TEST_ENV", "APP_ENV")

LOGIN_SIGNALS = (
    "left_login_page",
    "landing_url",
    "welcome_content",
    "password_form_absent",
    "navigation_present",
)


@dataclass(frozen=True)
class Environment:
    key: str
    name: str
    base_url: str
    base_path: str
    timeout_ms: int | None = None
    retries: int | None = None


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str
    totp_secret: str | None = None


@dataclass(frozen=True)
class LoginCheckSettings:
    threshold: int = 2
    signals: tuple = LOGIN_SIGNALS


@dataclass(frozen=True)
class SuiteConfig:
    environments: dict
    github_repo_url: str = ""
    credentials: dict = field(default_factory=dict)
    login_check: LoginCheckSettings = field(default_factory=LoginCheckSettings)


def is_well_formed_url(url: str) -> bool:
    try:
        parsed = urllib.parse.urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _require_object(raw, where: str) -> dict:
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{where} must be an object")
    return raw


def _optional_str(raw: dict, field_name: str, where: str) -> str:
    value = raw.get(field_name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigurationError(f"{where}.{field_name} must be a string, got {value!r}")
    return value.strip()


def _optional_int(raw: dict, field_name: str, where: str, default=None):
    value = raw.get(field_name)
    if value is None:
        return default
    # bool is an int subclass
    if isinstance(value, bool):
        raise ConfigurationError(f"{where}.{field_name} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{where}.{field_name} must be an integer, got {value!r}")


def _parse_environment(key: str, raw) -> Environment:
    where = f"Environment '{key}'"
    _require_object(raw, where)
    base_url = _optional_str(raw, "baseUrl", where)
    if not base_url:
        raise ConfigurationError(f"Environment '{key}' has no baseUrl")
    if not is_well_formed_url(base_url):
        raise ConfigurationError(f"Environment '{key}' has a malformed baseUrl: {base_url}")
    base_path = _optional_str(raw, "basePath", where)
    if not base_path:
        raise ConfigurationError(f"Environment '{key}' has no basePath")
    name = _optional_str(raw, "name", where)
    if not name:
        logger.warning("Environment '%s' has no display name; using its key", key)
        name = key
    return Environment(
        key=key,
        name=name,
        base_url=base_url,
        base_path=base_path,
        timeout_ms=_optional_int(raw, "timeout", where),
        retries=_optional_int(raw, "retries", where),
    )


def _parse_credentials(key: str, raw) -> Credentials:
    where = f"credentials.{key}"
    _require_object(raw, where)
    return Credentials(
        username=_optional_str(raw, "username", where),
        password=_optional_str(raw, "password", where),
        totp_secret=_optional_str(raw, "totpSecret", where) or None,
    )


def _parse_login_check(raw) -> LoginCheckSettings:
    if raw is None:
        return LoginCheckSettings()
    _require_object(raw, "loginCheck")
    raw_signals = raw.get("signals") or LOGIN_SIGNALS
    if not isinstance(raw_signals, (list, tuple)) or not all(isinstance(s, str) for s in raw_signals):
        raise ConfigurationError(f"loginCheck.signals must be a list of names, got {raw_signals!r}")
    signals = tuple(raw_signals)
    unknown = [s for s in signals if s not in LOGIN_SIGNALS]
    if unknown:
        raise ConfigurationError(f"Unknown login signals: {', '.join(unknown)}")
    threshold = _optional_int(raw, "threshold", "loginCheck", default=2)
    if threshold < 1 or threshold > len(signals):
        raise ConfigurationError(
            f"loginCheck.threshold must be between 1 and {len(signals)}, got {threshold}"
        )
    return LoginCheckSettings(threshold=threshold, signals=signals)


def parse_config(data) -> SuiteConfig:
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration document must be a JSON object")
    raw_envs = data.get("environments") or {}
    if not isinstance(raw_envs, dict) or not raw_envs:
        raise ConfigurationError("Configuration document defines no environments")
    environments = {key: _parse_environment(key, raw) for key, raw in raw_envs.items()}

    raw_credentials = _require_object(data.get("credentials") or {}, "credentials")
    credentials = {key: _parse_credentials(key, raw) for key, raw in raw_credentials.items()}

    github = _require_object(data.get("github") or {}, "github")
    github_repo_url = _optional_str(github, "exampleRepo", "github")
    if github_repo_url and not is_well_formed_url(github_repo_url):
        raise ConfigurationError(f"github.exampleRepo is malformed: {github_repo_url}")

    return SuiteConfig(
        environments=environments,
        github_repo_url=github_repo_url,
        credentials=credentials,
        login_check=_parse_login_check(data.get("loginCheck")),
    )


def load_config(path) -> SuiteConfig:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file not found: {path}")
    except OSError as e:
        raise ConfigurationError(f"Could not read configuration file {path}: {e}")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Configuration file {path} is not valid JSON: {e}")
    return parse_config(data)


def resolve_environment(config: SuiteConfig, cli_env: str | None = None, environ=None) -> Environment:
    if not config.environments:
        raise ConfigurationError("Configuration document defines no environments")
    environ = os.environ if environ is None else environ

    candidates = [("--env", cli_env)]
    candidates += [(var, environ.get(var)) for var in ENV_VARIABLES]
    candidates.append(("default", DEFAULT_ENVIRONMENT))

    for source, name in candidates:
        if not name:
            continue
        if name in config.environments:
            env = config.environments[name]
            logger.info("Using environment '%s' (%s) from %s", env.key, env.base_url, source)
            return env
        logger.warning("Environment '%s' from %s is not configured; skipping", name, source)

    env = next(iter(config.environments.values()))
    logger.warning("No configured environment selected; falling back to first entry '%s'", env.key)
    return env


def get_full_base_url(environment: Environment) -> str:
    base_url = environment.base_url
    if base_url.endswith("/"):
        base_url = base_url[:-1]
    base_path = environment.base_path
    if not base_path.startswith("/"):
        base_path = "/" + base_path
    full = f"{base_url}{base_path}"
    if not is_well_formed_url(full):
        raise ConfigurationError(f"Full base URL is malformed: {full}")
    return full


class ConfigManager:
    """Parsed configuration plus the environment resolved for this run.

    Built once by the CLI and handed to every scenario; never mutated.
    """

    def __init__(self, config: SuiteConfig, environment: Environment):
        self.config = config
        self.environment = environment

    @classmethod
    def from_path(cls, path=None, cli_env: str | None = None, environ=None) -> "ConfigManager":
        environ = os.environ if environ is None else environ
        path = path or environ.get("E2E_CONFIG") or DEFAULT_CONFIG_PATH
        config = load_config(path)
        return cls(config, resolve_environment(config, cli_env=cli_env, environ=environ))

    def get_current_environment(self) -> Environment:
        return self.environment

    def get_full_base_url(self) -> str:
        return get_full_base_url(self.environment)

    def get_credentials(self, name: str = "demo") -> Credentials:
        try:
            return self.config.credentials[name]
        except KeyError:
            raise ConfigurationError(f"No credentials named '{name}' in configuration")

    @property
    def github_repo_url(self) -> str:
        return self.config.github_repo_url

    @property
    def timeout_ms(self) -> int:
        return self.environment.timeout_ms or DEFAULT_TIMEOUT_MS

    @property
    def retries(self) -> int:
        return self.environment.retries or DEFAULT_RETRIES
