"""Connection profile resolution from CLI flags, environment, and config file.

This module turns three inputs into the single, frozen
:class:`~rmqadmin.models.ConnectionProfile` used for an invocation:

* **CLI flags** -- :class:`~rmqadmin.models.CliFlags` from the root callback.
* **Environment** -- a snapshot of ``RABBITMQADMIN_*`` variables taken by
  :func:`read_environment`.
* **Config file** -- TOML node aliases loaded by :func:`load_config_file`
  (``~/.rabbitmqadmin.conf`` unless ``--config`` says otherwise).

:func:`resolve_profile` is a pure function of those inputs; reading the
environment and the file happens in :func:`read_environment` and
:func:`load_config_file`, and :func:`resolve_config` chains all three.

Precedence is evaluated independently per field (high to low):

    1. CLI flag
    2. Environment variable
    3. Selected node alias
    4. Built-in default

The module also resolves the process-wide mode switches
(:func:`resolve_runtime_settings`) and the crash-log directory
(:func:`get_data_dir`).
"""

from __future__ import annotations

import os
import platform
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from rmqadmin.exceptions import (
    AmbiguousNodeAliasError,
    ConfigError,
    ConfigFileNotFoundError,
    ConfigParseError,
    InvalidTimeoutError,
    MissingCredentialError,
    UnknownNodeAliasError,
)
from rmqadmin.models import (
    DEFAULT_HOST,
    DEFAULT_HTTP_PORT,
    DEFAULT_HTTPS_PORT,
    DEFAULT_PASSWORD,
    DEFAULT_PATH_PREFIX,
    DEFAULT_SCHEME,
    DEFAULT_TIMEOUT,
    DEFAULT_USERNAME,
    DEFAULT_VHOST,
    HTTPS_SCHEME,
    CliFlags,
    ConfigFile,
    ConnectionProfile,
    NodeAlias,
    RuntimeSettings,
    TableStyle,
)

_APP_NAME = "rmqadmin"

ENV_PREFIX = "RABBITMQADMIN_"
DEFAULT_CONFIG_FILE_PATH = "~/.rabbitmqadmin.conf"

ENV_HOST = "RABBITMQADMIN_HOST"
ENV_PORT = "RABBITMQADMIN_PORT"
ENV_SCHEME = "RABBITMQADMIN_SCHEME"
ENV_BASE_URI = "RABBITMQADMIN_BASE_URI"
ENV_PATH_PREFIX = "RABBITMQADMIN_PATH_PREFIX"
ENV_VHOST = "RABBITMQADMIN_VHOST"
ENV_USERNAME = "RABBITMQADMIN_USERNAME"
ENV_PASSWORD = "RABBITMQADMIN_PASSWORD"
ENV_TIMEOUT = "RABBITMQADMIN_TIMEOUT"
ENV_NODE = "RABBITMQADMIN_NODE"
ENV_CONFIG = "RABBITMQADMIN_CONFIG"
ENV_TABLE_STYLE = "RABBITMQADMIN_TABLE_STYLE"

ENV_NON_INTERACTIVE = "RABBITMQADMIN_NON_INTERACTIVE_MODE"
ENV_INFER_SUBCOMMANDS = "RABBITMQADMIN_INFER_SUBCOMMANDS"
ENV_INFER_LONG_OPTIONS = "RABBITMQADMIN_INFER_LONG_OPTIONS"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory layout (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/rmqadmin/`` (default ``~/.local/share/rmqadmin/``).
    On macOS/Windows: ``~/.rmqadmin/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Environment ---


def read_environment(environ: Optional[Mapping[str, str]] = None) -> dict[str, str]:
    """Snapshot every ``RABBITMQADMIN_*`` variable.

    Args:
        environ: Mapping to read from; defaults to ``os.environ``.

    Returns:
        A plain dict so later resolution never touches process state.
    """
    source = os.environ if environ is None else environ
    return {k: v for k, v in source.items() if k.startswith(ENV_PREFIX)}


def is_enabled(value: Optional[str]) -> bool:
    """Whether an environment switch is on. Only ``true`` (any case) counts."""
    if value is None:
        return False
    return value.strip().lower() == "true"


def resolve_runtime_settings(env: Mapping[str, str]) -> RuntimeSettings:
    """Resolve the interactivity and inference switches once, at startup."""
    return RuntimeSettings(
        non_interactive=is_enabled(env.get(ENV_NON_INTERACTIVE)),
        infer_subcommands=is_enabled(env.get(ENV_INFER_SUBCOMMANDS)),
        infer_long_options=is_enabled(env.get(ENV_INFER_LONG_OPTIONS)),
    )


# --- Config file ---


def config_file_location(flags: CliFlags, env: Mapping[str, str]) -> tuple[Path, bool]:
    """Return the config file path and whether it was explicitly requested."""
    if flags.config:
        return Path(flags.config).expanduser(), True
    if env.get(ENV_CONFIG):
        return Path(env[ENV_CONFIG]).expanduser(), True
    return Path(DEFAULT_CONFIG_FILE_PATH).expanduser(), False


def parse_config_text(text: str, path: str) -> ConfigFile:
    """Parse TOML config file contents into a :class:`ConfigFile`.

    Raises:
        ConfigParseError: If the text is not valid TOML, a top-level entry is
            not a table, or a section holds a value of the wrong type.
    """
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigParseError(
            f"failed to parse config file at '{path}'. Make sure it is valid TOML: {exc}"
        ) from exc

    aliases: dict[str, NodeAlias] = {}
    for name, section in data.items():
        if not isinstance(section, dict):
            raise ConfigParseError(
                f"entry '{name}' in config file '{path}' must be a [section]"
            )
        try:
            aliases[name] = NodeAlias.model_validate({**section, "name": name})
        except ValidationError as exc:
            raise ConfigParseError(
                f"invalid node alias '{name}' in config file '{path}': {exc}"
            ) from exc
    return ConfigFile(path=path, aliases=aliases)


def load_config_file(path: Path, explicit: bool) -> Optional[ConfigFile]:
    """Read and parse a config file.

    Args:
        path: File location (``~`` already expanded).
        explicit: Whether the user asked for this file via ``--config`` or
            ``RABBITMQADMIN_CONFIG``. A missing default file is not an error.

    Returns:
        The parsed file, or ``None`` when the default file does not exist.

    Raises:
        ConfigFileNotFoundError: If an explicitly requested file is missing.
        ConfigParseError: If the file cannot be read or parsed.
    """
    if not path.is_file():
        if explicit:
            raise ConfigFileNotFoundError(
                f"provided config file at '{path}' does not exist"
            )
        return None
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigParseError(f"cannot read config file {path}: {exc}") from exc
    return parse_config_text(text, str(path))


def select_alias(
    flags: CliFlags, env: Mapping[str, str], config_file: Optional[ConfigFile]
) -> Optional[NodeAlias]:
    """Pick the node alias to use: ``--node`` > ``RABBITMQADMIN_NODE`` > marked default.

    Raises:
        UnknownNodeAliasError: If the requested alias is not in the file.
        AmbiguousNodeAliasError: If no alias was requested and the file does
            not mark exactly one default.
    """
    requested = flags.node or env.get(ENV_NODE) or None
    if config_file is None:
        if requested:
            raise UnknownNodeAliasError(
                f"node alias '{requested}' was requested but no configuration file was found"
            )
        return None

    if requested:
        alias = config_file.aliases.get(requested)
        if alias is None:
            raise UnknownNodeAliasError(
                f"provided configuration section (--node) '{requested}' was not found "
                f"in the configuration file '{config_file.path}'"
            )
        return alias

    if not config_file.aliases:
        return None
    defaults = config_file.default_aliases()
    if len(defaults) == 1:
        return defaults[0]
    if not defaults:
        raise AmbiguousNodeAliasError(
            f"configuration file '{config_file.path}' defines node aliases but none is "
            "marked as default; pass --node to pick one"
        )
    names = ", ".join(sorted(a.name for a in defaults))
    raise AmbiguousNodeAliasError(
        f"configuration file '{config_file.path}' marks several default node aliases "
        f"({names}); pass --node to pick one"
    )


# --- Precedence resolution ---


def validate_timeout(value: Any) -> int:
    """Return *value* as a positive int or raise :class:`InvalidTimeoutError`."""
    if isinstance(value, bool):
        raise InvalidTimeoutError(f"timeout must be a positive integer, got: {value}")
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise InvalidTimeoutError(
                f"timeout must be a positive integer, got: {value!r}"
            ) from None
    if not isinstance(value, int) or value <= 0:
        raise InvalidTimeoutError(
            f"timeout must be a positive integer number of seconds, got: {value}"
        )
    return value


def _uri_fields(uri: str, origin: str) -> dict[str, Any]:
    """Split a base URI into scheme, host, port, and path prefix."""
    try:
        url = httpx.URL(uri)
    except httpx.InvalidURL as exc:
        raise ConfigParseError(f"invalid base URI {uri!r} ({origin}): {exc}") from exc
    if url.scheme not in (DEFAULT_SCHEME, HTTPS_SCHEME) or not url.host:
        raise ConfigParseError(
            f"base URI {uri!r} ({origin}) must look like http[s]://host[:port][/prefix]"
        )
    fields: dict[str, Any] = {"scheme": url.scheme, "host": url.host}
    if url.port is not None:
        fields["port"] = url.port
    if url.path and url.path != "/":
        fields["path_prefix"] = url.path
    return fields


def _layer(values: dict[str, Any], base_uri: Optional[str], tls: Optional[bool], origin: str) -> dict[str, Any]:
    """Build one precedence layer, expanding ``base_uri`` and ``tls`` into fields.

    Values given explicitly in the same layer win over those derived from
    the base URI. Empty strings count as unset, so they fall through to the
    next layer.
    """
    layer: dict[str, Any] = {}
    if base_uri:
        layer.update(_uri_fields(base_uri, origin))
    if tls and values.get("scheme") is None:
        layer["scheme"] = HTTPS_SCHEME
    layer.update({k: v for k, v in values.items() if v is not None and v != ""})
    return layer


def _flag_layer(flags: CliFlags) -> dict[str, Any]:
    values = {
        "host": flags.host,
        "port": flags.port,
        "path_prefix": flags.path_prefix,
        "vhost": flags.vhost,
        "username": flags.username,
        "password": flags.password,
        "timeout": flags.timeout,
        "table_style": flags.table_style,
    }
    return _layer(values, flags.base_uri, flags.use_tls, "--base-uri")


def _env_layer(env: Mapping[str, str]) -> dict[str, Any]:
    port: Optional[int] = None
    if env.get(ENV_PORT):
        try:
            port = int(env[ENV_PORT].strip())
        except ValueError:
            raise ConfigParseError(
                f"{ENV_PORT} must be an integer, got: {env[ENV_PORT]!r}"
            ) from None
    table_style: Optional[TableStyle] = None
    if env.get(ENV_TABLE_STYLE):
        try:
            table_style = TableStyle(env[ENV_TABLE_STYLE].strip().lower())
        except ValueError:
            raise ConfigParseError(
                f"{ENV_TABLE_STYLE} has an unsupported value: {env[ENV_TABLE_STYLE]!r}"
            ) from None
    values = {
        "scheme": env.get(ENV_SCHEME, "").strip().lower() or None,
        "host": env.get(ENV_HOST) or None,
        "port": port,
        "path_prefix": env.get(ENV_PATH_PREFIX) or None,
        "vhost": env.get(ENV_VHOST) or None,
        "username": env.get(ENV_USERNAME) or None,
        "password": env.get(ENV_PASSWORD) or None,
        "timeout": env.get(ENV_TIMEOUT) or None,
        "table_style": table_style,
    }
    return _layer(values, env.get(ENV_BASE_URI), None, ENV_BASE_URI)


def _alias_layer(alias: Optional[NodeAlias]) -> dict[str, Any]:
    if alias is None:
        return {}
    values = {
        "scheme": alias.scheme,
        "host": alias.host,
        "port": alias.port,
        "path_prefix": alias.path_prefix,
        "vhost": alias.vhost,
        "username": alias.username,
        "password": alias.password,
        "timeout": alias.timeout,
        "table_style": alias.table_style,
    }
    return _layer(values, alias.base_uri, alias.tls, f"node alias '{alias.name}'")


def _first(field: str, layers: list[dict[str, Any]]) -> Any:
    """Return the first value supplied for *field*, highest precedence first."""
    for layer in layers:
        if layer.get(field) is not None:
            return layer[field]
    return None


def _normalize_path_prefix(prefix: str) -> str:
    prefix = prefix.strip().rstrip("/")
    if prefix and not prefix.startswith("/"):
        prefix = f"/{prefix}"
    return prefix


def resolve_profile(
    flags: CliFlags,
    env: Mapping[str, str],
    config_file: Optional[ConfigFile],
) -> ConnectionProfile:
    """Merge flags, environment, and config file into one connection profile.

    Pure function: it reads nothing beyond its arguments.

    Args:
        flags: Global CLI options.
        env: Snapshot of ``RABBITMQADMIN_*`` variables.
        config_file: Parsed config file, or ``None`` if there is none.

    Returns:
        The frozen :class:`~rmqadmin.models.ConnectionProfile`.

    Raises:
        InvalidTimeoutError: If the effective timeout is not a positive integer.
        MissingCredentialError: If the username or password is blank.
        AmbiguousNodeAliasError: If no alias is selected and none is the default.
        UnknownNodeAliasError: If the selected alias does not exist.
        ConfigParseError: If a value has the wrong shape.
    """
    if flags.timeout is not None:
        validate_timeout(flags.timeout)

    alias = select_alias(flags, env, config_file)
    layers = [_flag_layer(flags), _env_layer(env), _alias_layer(alias)]

    timeout_value = _first("timeout", layers)
    timeout = DEFAULT_TIMEOUT if timeout_value is None else validate_timeout(timeout_value)

    scheme = _first("scheme", layers) or DEFAULT_SCHEME
    if scheme not in (DEFAULT_SCHEME, HTTPS_SCHEME):
        raise ConfigParseError(f"unsupported scheme: {scheme!r} (expected http or https)")

    port = _first("port", layers)
    if port is None:
        port = DEFAULT_HTTPS_PORT if scheme == HTTPS_SCHEME else DEFAULT_HTTP_PORT
    if not 0 < port < 65536:
        raise ConfigParseError(f"port must be between 1 and 65535, got: {port}")

    username = _first("username", layers)
    if username is None:
        username = DEFAULT_USERNAME
    password = _first("password", layers)
    if password is None:
        password = DEFAULT_PASSWORD
    if not username.strip() or not password.strip():
        raise MissingCredentialError("username and password must not be blank")

    prefix = _first("path_prefix", layers)
    path_prefix = DEFAULT_PATH_PREFIX if prefix is None else _normalize_path_prefix(prefix)

    try:
        return ConnectionProfile(
            scheme=scheme,
            host=_first("host", layers) or DEFAULT_HOST,
            port=port,
            path_prefix=path_prefix,
            vhost=_first("vhost", layers) or DEFAULT_VHOST,
            username=username,
            password=password,
            timeout=timeout,
            verify_tls=not flags.insecure,
            ca_cert_file=flags.tls_ca_cert_file,
            table_style=_first("table_style", layers) or TableStyle.MODERN,
        )
    except ValidationError as exc:
        raise ConfigError(f"invalid connection settings: {exc}") from exc


def resolve_config(
    flags: CliFlags, environ: Optional[Mapping[str, str]] = None
) -> ConnectionProfile:
    """Validate flags, read the environment and config file, then resolve.

    A flag timeout is checked before any file is opened, so an invalid
    ``--timeout`` fails without touching the disk or the network.
    """
    if flags.timeout is not None:
        validate_timeout(flags.timeout)
    env = read_environment(environ)
    path, explicit = config_file_location(flags, env)
    config_file = load_config_file(path, explicit)
    return resolve_profile(flags, env, config_file)
