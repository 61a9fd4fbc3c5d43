"""portforge runtime configuration and settings."""
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from dotenv import load_dotenv

from portforge.core.retry import RetryPolicy

DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "portfolio"
DEFAULT_WORK_DIR = Path.home() / ".portforge" / "work"
DEFAULT_LARGE_FOLDERS: Tuple[str, ...] = ("dist", "public", "src")

# Config search paths (ordered by proximity to current run)
CONFIG_PATHS = [
    "./portforge.yml",
    str(Path.home() / ".portforge" / "portforge.yml"),
]


class ConfigError(Exception):
    """Raised when configuration is missing or malformed."""
    pass


@dataclass(frozen=True)
class Credentials:
    """Access credentials for the external providers.

    Attributes:
        source_host_token: GitHub personal access token
        deploy_token: Vercel access token
        source_host_owner: GitHub account that owns created repositories
        storage_url: Supabase project URL
        storage_key: Supabase service key
    """

    source_host_token: str = ""
    deploy_token: str = ""
    source_host_owner: str = ""
    storage_url: str = ""
    storage_key: str = ""

    def missing(self) -> List[str]:
        """Return the names of credentials that are not set."""
        return [f.name for f in fields(self) if not getattr(self, f.name)]


@dataclass
class PipelineConfig:
    """Runtime configuration for a portfolio pipeline run.

    Built once at startup and passed into the pipeline; stage components
    receive only the values they need.
    """

    credentials: Credentials = field(default_factory=Credentials)
    template_dir: Path = DEFAULT_TEMPLATE_DIR
    work_dir: Path = DEFAULT_WORK_DIR

    # Repository and publishing
    branch: str = "main"
    remote_name: str = "origin"
    large_folders: Tuple[str, ...] = DEFAULT_LARGE_FOLDERS
    repo_description: str = "Portfolio website generated automatically"
    private_repo: bool = False
    commit_author_name: str = "portforge"
    commit_author_email: str = "portforge@users.noreply.github.com"

    # Deployment
    build_command: str = "npm run build"
    output_directory: str = "dist"
    vercel_team_id: Optional[str] = None

    # Object storage
    storage_bucket: str = "portfolios"
    storage_prefix: str = "generated"

    # Run behaviour
    keep_output: bool = False
    rollback_on_failure: bool = False
    request_timeout: int = 30  # seconds per HTTP request
    lock_timeout: int = 0  # 0 = fail immediately when the slug is busy
    mock: bool = False

    # Cleanup retries: 3 attempts, 2s grace before the first, 1s between
    cleanup_attempts: int = 3
    cleanup_initial_delay: float = 2.0
    cleanup_retry_delay: float = 1.0

    def __post_init__(self):
        self.template_dir = Path(self.template_dir).expanduser()
        self.work_dir = Path(self.work_dir).expanduser()
        self.large_folders = tuple(self.large_folders)

    @property
    def cleanup_policy(self) -> RetryPolicy:
        """Retry policy used when deleting the output directory."""
        return RetryPolicy(
            max_attempts=self.cleanup_attempts,
            delay_before_first=self.cleanup_initial_delay,
            delay_between=self.cleanup_retry_delay,
            exceptions=(OSError,),
        )

    def validate(self) -> None:
        """Raise ConfigError when required settings are missing.

        Credentials are not required in mock mode.
        """
        problems = []
        if not self.mock:
            missing = self.credentials.missing()
            if missing:
                problems.append(f"missing credentials: {', '.join(missing)}")
        if not self.template_dir.is_dir():
            problems.append(f"template directory not found: {self.template_dir}")
        if self.cleanup_attempts < 1:
            problems.append("cleanup_attempts must be at least 1")
        if problems:
            raise ConfigError("Invalid configuration: " + "; ".join(problems))

    @classmethod
    def from_env(cls, base: Optional["PipelineConfig"] = None) -> "PipelineConfig":
        """Create config from environment variables.

        Environment variables:
            GITHUB_TOKEN (or GIT_ACCESS_TOKEN): GitHub access token
            GITHUB_USERNAME: Owner of created repositories
            VERCEL_TOKEN (or VERCEL_ACCESS_TOKEN): Vercel access token
            SUPABASE_URL / SUPABASE_KEY: Object storage endpoint and key
            PORTFORGE_TEMPLATE_DIR, PORTFORGE_WORK_DIR, PORTFORGE_BRANCH,
            PORTFORGE_VERCEL_TEAM_ID, PORTFORGE_KEEP_OUTPUT,
            PORTFORGE_ROLLBACK, PORTFORGE_MOCK

        Args:
            base: Config whose values are used when a variable is unset

        Returns:
            PipelineConfig instance with values from environment or defaults
        """
        base = base or cls()
        creds = base.credentials
        credentials = Credentials(
            source_host_token=os.getenv("GITHUB_TOKEN") or os.getenv("GIT_ACCESS_TOKEN") or creds.source_host_token,
            deploy_token=os.getenv("VERCEL_TOKEN") or os.getenv("VERCEL_ACCESS_TOKEN") or creds.deploy_token,
            source_host_owner=os.getenv("GITHUB_USERNAME", creds.source_host_owner),
            storage_url=os.getenv("SUPABASE_URL", creds.storage_url),
            storage_key=os.getenv("SUPABASE_KEY", creds.storage_key),
        )

        return replace(
            base,
            credentials=credentials,
            template_dir=Path(os.getenv("PORTFORGE_TEMPLATE_DIR", base.template_dir)),
            work_dir=Path(os.getenv("PORTFORGE_WORK_DIR", base.work_dir)),
            branch=os.getenv("PORTFORGE_BRANCH", base.branch),
            vercel_team_id=os.getenv("PORTFORGE_VERCEL_TEAM_ID", base.vercel_team_id),
            keep_output=_env_flag("PORTFORGE_KEEP_OUTPUT", base.keep_output),
            rollback_on_failure=_env_flag("PORTFORGE_ROLLBACK", base.rollback_on_failure),
            mock=_env_flag("PORTFORGE_MOCK", base.mock),
        )

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "PipelineConfig":
        """Create config from a parsed YAML mapping."""
        if not isinstance(data, dict):
            raise ConfigError("Config file must contain a mapping")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

        values = dict(data)
        creds = values.pop("credentials", None) or {}
        if not isinstance(creds, dict):
            raise ConfigError("'credentials' must be a mapping")
        try:
            credentials = Credentials(**creds)
        except TypeError as e:
            raise ConfigError(f"Invalid credentials section: {e}") from e
        return cls(credentials=credentials, **values)


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def find_config(config_path: Optional[str] = None) -> Optional[Path]:
    """Locate the active portforge configuration file, if any."""
    if config_path:
        return Path(config_path)

    if env_config := os.environ.get("PORTFORGE_CONFIG"):
        return Path(env_config)

    for path in CONFIG_PATHS:
        if Path(path).exists():
            return Path(path)

    return None


def load_config(config_path: Optional[str] = None, dotenv: bool = True) -> PipelineConfig:
    """Resolve configuration once at startup.

    Order of precedence (lowest first): defaults, YAML file, environment
    (including values loaded from a local .env file).

    Raises:
        ConfigError: If an explicit config file is missing or malformed
    """
    if dotenv:
        load_dotenv()

    base = PipelineConfig()
    path = find_config(config_path)
    if path is not None:
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        try:
            data = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse {path}: {e}") from e
        base = PipelineConfig.from_mapping(data)

    return PipelineConfig.from_env(base)
