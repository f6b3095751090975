"""
Layered loading of the OpenAI and Google OAuth settings.

Every field is resolved independently against an ordered list of layers, the
first non-empty value winning:

1. environment variables (``Group__Field`` and ``GROUP__FIELD``),
2. the developer user-secrets store, located through the
   ``[tool.homework-evaluator] user-secrets-id`` entry of ``pyproject.toml``,
3. the public ``appsettings.json`` (non-secret OAuth fields only).

Read failures only print a warning; loading never raises.
"""

import json
import os
import re
import tomllib
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Sequence, Tuple

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_APPLICATION_NAME = "EvaluateHomework"
APP_DIR_NAME = "homework-evaluator"

OAUTH_GROUP = "GoogleOAuth"
OPENAI_GROUP = "OpenAI"

# Conventional names accepted on top of the Group__Field pair
ENV_ALIASES = {
    (OPENAI_GROUP, "ApiKey"): ("OPENAI_API_KEY",),
}

Lookup = Callable[[str, str], Any]


@dataclass(frozen=True)
class OAuthSettings:
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    redirect_uri: Optional[str] = None
    scopes: Tuple[str, ...] = ()
    application_name: str = DEFAULT_APPLICATION_NAME


@dataclass(frozen=True)
class LlmSettings:
    api_key: Optional[str] = None


def _warn(message: str) -> None:
    print(f"Warning: {message}")


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def normalize_scopes(value: Any) -> Tuple[str, ...]:
    """Accept a JSON array or a ',' / ';' delimited string."""
    if isinstance(value, str):
        parts = re.split(r"[,;]", value)
    elif isinstance(value, (list, tuple)):
        parts = [str(v) for v in value if v is not None]
    else:
        return ()
    return tuple(p.strip() for p in parts if p.strip())


def env_lookup(environ: Mapping[str, str], group: str, name: str) -> Optional[str]:
    key = f"{group}__{name}"
    for candidate in (key, key.upper()) + ENV_ALIASES.get((group, name), ()):
        value = environ.get(candidate)
        if value:
            return value
    return None


def document_lookup(document: Any, group: str, name: str) -> Any:
    """Look up the flat ``"Group:Field"`` key first, then ``{"Group": {"Field": ...}}``."""
    if not isinstance(document, Mapping):
        return None
    flat = document.get(f"{group}:{name}")
    if not _is_empty(flat):
        return flat
    nested = document.get(group)
    if isinstance(nested, Mapping):
        return nested.get(name)
    return None


def resolve_setting(group: str, name: str, layers: Sequence[Lookup],
                    normalize: Optional[Callable[[Any], Any]] = None) -> Any:
    """Return the first non-empty value found for ``group``/``name`` across ``layers``."""
    for layer in layers:
        value = layer(group, name)
        if normalize is not None and value is not None:
            value = normalize(value)
        if not _is_empty(value):
            return value
    return None


def _as_text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def merge_llm_settings(environ: Mapping[str, str], secrets: Any) -> LlmSettings:
    layers = [partial(env_lookup, environ), partial(document_lookup, secrets)]
    return LlmSettings(api_key=_as_text(resolve_setting(OPENAI_GROUP, "ApiKey", layers)))


def merge_oauth_settings(environ: Mapping[str, str], secrets: Any, public: Any) -> OAuthSettings:
    """Pure merge of the three layers; no file or process state is touched."""
    private_layers = [partial(env_lookup, environ), partial(document_lookup, secrets)]
    public_layers = private_layers + [partial(document_lookup, public)]

    scopes = resolve_setting(OAUTH_GROUP, "Scopes", public_layers, normalize=normalize_scopes)
    application_name = resolve_setting(OAUTH_GROUP, "ApplicationName", public_layers)
    return OAuthSettings(
        client_id=_as_text(resolve_setting(OAUTH_GROUP, "ClientId", public_layers)),
        client_secret=_as_text(resolve_setting(OAUTH_GROUP, "ClientSecret", private_layers)),
        redirect_uri=_as_text(resolve_setting(OAUTH_GROUP, "RedirectUri", public_layers)),
        scopes=scopes or (),
        application_name=_as_text(application_name) or DEFAULT_APPLICATION_NAME,
    )


def app_data_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Per-user application data directory for this tool."""
    environ = os.environ if environ is None else environ
    if os.name == "nt" and environ.get("APPDATA"):
        base = Path(environ["APPDATA"])
    elif environ.get("XDG_CONFIG_HOME"):
        base = Path(environ["XDG_CONFIG_HOME"])
    else:
        base = Path.home() / ".config"
    return base / APP_DIR_NAME


def read_json_document(path: Path) -> Any:
    if not path.exists():
        _warn(f"{path} not found")
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        _warn(f"failed to read {path}: {e}")
        return None


def read_user_secrets_id(project_file: Path) -> Optional[str]:
    if not project_file.exists():
        return None
    try:
        with open(project_file, "rb") as f:
            project = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        _warn(f"failed to read {project_file}: {e}")
        return None
    secrets_id = project.get("tool", {}).get(APP_DIR_NAME, {}).get("user-secrets-id")
    if isinstance(secrets_id, str) and secrets_id.strip():
        return secrets_id.strip()
    return None


def user_secrets_path(secrets_id: str, environ: Optional[Mapping[str, str]] = None) -> Path:
    return app_data_dir(environ) / "user-secrets" / secrets_id / "secrets.json"


def load_user_secrets(cwd: Optional[Path] = None, project_file: str = "pyproject.toml",
                      environ: Optional[Mapping[str, str]] = None) -> Any:
    cwd = Path.cwd() if cwd is None else Path(cwd)
    secrets_id = read_user_secrets_id(cwd / project_file)
    if secrets_id is None:
        return None
    return read_json_document(user_secrets_path(secrets_id, environ))


def load_llm_settings(cwd: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None,
                      project_file: str = "pyproject.toml") -> LlmSettings:
    environ = os.environ if environ is None else environ
    secrets = load_user_secrets(cwd, project_file, environ)
    return merge_llm_settings(environ, secrets)


def load_oauth_settings(cwd: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None,
                        project_file: str = "pyproject.toml",
                        public_settings_file: str = "appsettings.json") -> OAuthSettings:
    environ = os.environ if environ is None else environ
    cwd = Path.cwd() if cwd is None else Path(cwd)
    public = read_json_document(cwd / public_settings_file)
    secrets = load_user_secrets(cwd, project_file, environ)
    return merge_oauth_settings(environ, secrets, public)
