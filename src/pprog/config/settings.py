"""
Settings configuration using pydantic-settings.

Loads configuration from:
1. Constructor arguments (highest precedence)
2. Environment variables with PPROG_ prefix
3. .env file (if present)
4. Project config file pprog.yaml at the project root
5. Field defaults (lowest)

Settings are loaded once and passed explicitly to the components that
need them; nothing re-reads configuration behind the caller's back.
"""

import json as _json
import os as _os
import pathlib as _pathlib
import subprocess as _subprocess
import typing as _typing

import pydantic as _pydantic
import pydantic_settings as _pydantic_settings

import pprog.api.credentials as credentials
import pprog.api.factory as factory
import pprog.constants as _constants


def _get_env_file() -> str | None:
    """Determine which .env file to load.

    PPROG_ENV_FILE wins if set (and must exist); otherwise a .env in the
    working directory is used when present.
    """
    if env_file := _os.environ.get("PPROG_ENV_FILE"):
        return env_file if _pathlib.Path(env_file).exists() else None
    if _pathlib.Path(".env").exists():
        return ".env"
    return None


def find_git_root(start_path: _pathlib.Path | None = None) -> _pathlib.Path | None:
    """Find the git repository root from the given path or current directory."""
    if start_path is None:
        start_path = _pathlib.Path.cwd()

    try:
        result = _subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            capture_output=True,
            text=True,
            cwd=start_path,
            timeout=5,
        )
        if result.returncode == 0:
            return _pathlib.Path(result.stdout.strip())
    except (_subprocess.TimeoutExpired, FileNotFoundError, OSError):
        pass
    return None


def find_project_root(start_path: _pathlib.Path | None = None) -> _pathlib.Path:
    """
    Find the project root directory.

    PPROG_PROJECT_ROOT wins if set; otherwise the git repository root,
    falling back to the start path (default: cwd).
    """
    if explicit := _os.environ.get("PPROG_PROJECT_ROOT"):
        return _pathlib.Path(explicit).resolve()
    start = start_path or _pathlib.Path.cwd()
    return find_git_root(start) or start.resolve()


def detect_check_cmd(root: _pathlib.Path) -> str | None:
    """
    Guess the project's check command from marker files.

    Returns:
        A shell command that compiles or type-checks the project, or None
    """
    if (root / "Cargo.toml").exists():
        return "cargo check"
    if (root / "tsconfig.json").exists():
        return "tsc --noEmit"
    if (root / "gradlew").exists():
        return "./gradlew check"
    package_json = root / "package.json"
    if package_json.exists():
        try:
            main = _json.loads(package_json.read_text(encoding="utf-8")).get("main")
        except (OSError, ValueError, AttributeError):
            main = None
        if isinstance(main, str) and main:
            return f"node {main}"
    if (root / "pyproject.toml").exists() or (root / "setup.py").exists():
        return "python -m compileall -q ."
    return None


class Settings(_pydantic_settings.BaseSettings):
    """
    pprog configuration settings.

    All settings can be overridden via environment variables with PPROG_ prefix,
    e.g. PPROG_PROVIDER=gemini or PPROG_MAX_CONTEXT=50000.
    """

    model_config = _pydantic_settings.SettingsConfigDict(
        env_prefix="PPROG_",
        env_file=_get_env_file(),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Provider selection
    provider: str = _constants.DEFAULT_PROVIDER
    model: str = _constants.DEFAULT_MODEL
    api_key: str | None = None
    credentials_path: str | None = None
    base_url: str | None = None
    request_timeout: float | None = None
    tool_mode: _typing.Literal["native", "fenced"] = "native"

    # Bedrock
    aws_region: str = _constants.DEFAULT_AWS_REGION
    temperature: float = _constants.DEFAULT_TEMPERATURE

    # Budgets
    max_context: int = _pydantic.Field(default=_constants.DEFAULT_MAX_CONTEXT, ge=1)
    max_output_tokens: int = _pydantic.Field(default=_constants.DEFAULT_MAX_OUTPUT_TOKENS, ge=1)
    token_estimator: _typing.Literal["chars", "tiktoken"] = "chars"

    # Tools
    check_cmd: str | None = None
    check_timeout: float = _pydantic.Field(default=_constants.DEFAULT_CHECK_TIMEOUT, gt=0)
    auto_execute: bool = False
    max_tool_rounds: int = _pydantic.Field(default=_constants.DEFAULT_MAX_TOOL_ROUNDS, ge=1)

    # Logging
    log_conversations: bool = False
    log_dir: str | None = None

    @_pydantic.field_validator("provider")
    @classmethod
    def _validate_provider(cls, value: str) -> str:
        return factory.ProviderKind.parse(value).value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[_pydantic_settings.BaseSettings],
        init_settings: _pydantic_settings.PydanticBaseSettingsSource,
        env_settings: _pydantic_settings.PydanticBaseSettingsSource,
        dotenv_settings: _pydantic_settings.PydanticBaseSettingsSource,
        file_secret_settings: _pydantic_settings.PydanticBaseSettingsSource,
    ) -> tuple[_pydantic_settings.PydanticBaseSettingsSource, ...]:
        """
        Configure settings sources with precedence:
        1. init_settings (constructor args) - highest
        2. env_settings (PPROG_* env vars)
        3. dotenv_settings (.env file)
        4. pprog.yaml at the project root
        """
        yaml_file = find_project_root() / _constants.CONFIG_FILENAME
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            _pydantic_settings.YamlConfigSettingsSource(settings_cls, yaml_file=yaml_file),
            file_secret_settings,
        )

    @classmethod
    def construct_without_dotenv(cls, **kwargs: _typing.Any) -> "Settings":
        """Create Settings from environment variables only, without loading .env file.

        Useful for test isolation and CI, where a stray .env must not leak in.
        """
        return cls(_env_file=None, **kwargs)  # type: ignore[call-arg]

    # =========================================================================
    # Directory settings (computed at runtime)
    # =========================================================================

    @property
    def project_root(self) -> _pathlib.Path:
        """Project root directory (git root or cwd)."""
        return find_project_root()

    @property
    def logs_dir(self) -> _pathlib.Path:
        """Directory for conversation log files."""
        if self.log_dir:
            return _pathlib.Path(self.log_dir).expanduser()
        return self.project_root / ".pprog" / "logs"

    # =========================================================================
    # Helper methods
    # =========================================================================

    def get_api_key(self) -> str | None:
        """Get the API key for the configured provider."""
        return credentials.resolve_api_key(
            self.provider,
            api_key=self.api_key,
            credentials_path=self.credentials_path,
        )

    def get_base_url(self) -> str | None:
        """Configured base URL or the provider's public default."""
        return self.base_url or _constants.DEFAULT_BASE_URLS.get(self.provider)

    def get_check_cmd(self) -> str | None:
        """Configured check command, or one detected from the project files."""
        return self.check_cmd or detect_check_cmd(self.project_root)

    def to_dict(self) -> dict[str, _typing.Any]:
        """Effective settings with the API key masked."""
        data = self.model_dump()
        key = self.get_api_key()
        data["api_key"] = f"{key[:4]}...{key[-4:]}" if key and len(key) > 12 else ("***" if key else None)
        data["base_url"] = self.get_base_url()
        data["check_cmd"] = self.get_check_cmd()
        data["project_root"] = str(self.project_root)
        return data
