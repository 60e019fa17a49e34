"""
API key resolution for HTTP providers.

A key can come from (highest precedence first) explicit configuration,
a JSON credentials file, or the provider's conventional environment
variable.
"""

import json as _json
import os as _os
import pathlib as _pathlib
import typing as _typing

import pprog.constants as _constants


def load_credentials_from_path(path: str) -> dict[str, _typing.Any]:
    """
    Load credentials from a JSON file.

    Args:
        path: Path to credentials JSON file. Supports ~ and $VAR expansion.

    Returns:
        Dict containing credentials (e.g., {"api_key": "..."}).

    Raises:
        ValueError: If file cannot be read or parsed.
    """
    expanded_path = _os.path.expandvars(_os.path.expanduser(path))
    creds_path = _pathlib.Path(expanded_path)

    if not creds_path.exists():
        raise ValueError(f"Credentials file not found: {expanded_path}")

    try:
        credentials = _json.loads(creds_path.read_text(encoding="utf-8"))
    except PermissionError as e:
        raise ValueError(f"Permission denied reading credentials file: {expanded_path}") from e
    except _json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in credentials file {expanded_path}: {e}") from e

    if not isinstance(credentials, dict):
        raise ValueError(f"Credentials file must contain a JSON object: {expanded_path}")
    return credentials


def resolve_api_key(
    provider: str,
    *,
    api_key: str | None = None,
    credentials_path: str | None = None,
    environ: _typing.Mapping[str, str] | None = None,
) -> str | None:
    """
    Find the API key for a provider.

    Args:
        provider: Provider name (e.g. 'openai')
        api_key: Explicitly configured key
        credentials_path: Optional JSON file holding {"api_key": "..."}
        environ: Environment to consult (default: os.environ)

    Returns:
        The key, or None if none is configured
    """
    if api_key:
        return api_key
    if credentials_path:
        key = load_credentials_from_path(credentials_path).get("api_key")
        if key:
            return str(key)
    env_var = _constants.API_KEY_ENV_VARS.get(provider)
    if env_var is None:
        return None
    return (environ if environ is not None else _os.environ).get(env_var) or None
