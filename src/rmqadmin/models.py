"""Canonical Pydantic models shared across all rmqadmin modules.

This is the single source of truth for data shapes in the project. The models
fall into three groups:

**Connection models** -- inputs and output of profile resolution:
    :class:`CliFlags`, :class:`NodeAlias`, :class:`ConfigFile`, and the
    immutable :class:`ConnectionProfile` produced by
    :func:`~rmqadmin.config.resolve_profile`.

**Operation models** -- what a single CLI invocation asks the broker to do:
    :class:`Verb`, :class:`Operation`, :class:`PageRequest`, and
    :class:`PageResult`.

**Runtime models** -- process-wide switches resolved once at startup:
    :class:`RuntimeSettings` and :class:`TableStyle`.
"""

from __future__ import annotations

import enum
from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


DEFAULT_SCHEME = "http"
HTTPS_SCHEME = "https"
DEFAULT_HOST = "localhost"
DEFAULT_HTTP_PORT = 15672
DEFAULT_HTTPS_PORT = 15671
DEFAULT_PATH_PREFIX = ""
DEFAULT_VHOST = "/"
DEFAULT_USERNAME = "guest"
DEFAULT_PASSWORD = "guest"
DEFAULT_TIMEOUT = 60
"""Per-request timeout in seconds when nothing else is configured."""

Scheme = Literal["http", "https"]


class TableStyle(str, enum.Enum):
    """Table border styles accepted by ``--table-style``."""

    MODERN = "modern"
    ROUNDED = "rounded"
    ASCII = "ascii"
    MARKDOWN = "markdown"
    HEAVY = "heavy"
    BORDERLESS = "borderless"


# --- Connection models ---


class CliFlags(BaseModel):
    """Global options exactly as given on the command line.

    Every field is optional; ``None`` means "not supplied" so that
    lower-precedence sources can fill it in.
    """

    host: Optional[str] = None
    port: Optional[int] = None
    vhost: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    node: Optional[str] = None
    config: Optional[str] = None
    timeout: Optional[int] = None
    table_style: Optional[TableStyle] = None
    base_uri: Optional[str] = None
    path_prefix: Optional[str] = None
    use_tls: bool = False
    insecure: bool = False
    tls_ca_cert_file: Optional[str] = None


class NodeAlias(BaseModel):
    """A named section of the config file holding a partial profile.

    Example ``~/.rabbitmqadmin.conf``::

        [staging]
        default = true
        hostname = "rabbit.staging.local"
        port = 15672
        username = "ops"
        password = "s3cret"

        [production]
        base_uri = "https://rabbit.prod.example:15671"
        vhost = "events"

    Both the historical key names (``hostname``, ``virtual_host``) and the
    short ones (``host``, ``vhost``) are accepted. Unknown keys are ignored.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = ""
    default: bool = False
    base_uri: Optional[str] = None
    scheme: Optional[Scheme] = None
    tls: Optional[bool] = None
    host: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("host", "hostname")
    )
    port: Optional[int] = None
    path_prefix: Optional[str] = None
    vhost: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("vhost", "virtual_host")
    )
    username: Optional[str] = None
    password: Optional[str] = None
    timeout: Optional[int] = None
    table_style: Optional[TableStyle] = None


class ConfigFile(BaseModel):
    """A parsed config file: alias name to :class:`NodeAlias`."""

    path: str
    aliases: dict[str, NodeAlias] = Field(default_factory=dict)

    def default_aliases(self) -> list[NodeAlias]:
        """Aliases marked ``default = true`` or named ``default``."""
        return [
            alias
            for name, alias in self.aliases.items()
            if alias.default or name == "default"
        ]


class ConnectionProfile(BaseModel):
    """The effective connection settings for one invocation.

    Produced once by :func:`~rmqadmin.config.resolve_profile` and frozen
    afterwards; any attempt to assign a field raises a validation error.
    """

    model_config = ConfigDict(frozen=True)

    scheme: Scheme = DEFAULT_SCHEME
    host: str = DEFAULT_HOST
    port: int = DEFAULT_HTTP_PORT
    path_prefix: str = DEFAULT_PATH_PREFIX
    vhost: str = DEFAULT_VHOST
    username: str = DEFAULT_USERNAME
    password: str = DEFAULT_PASSWORD
    timeout: int = Field(default=DEFAULT_TIMEOUT, gt=0)
    verify_tls: bool = True
    ca_cert_file: Optional[str] = None
    table_style: TableStyle = TableStyle.MODERN

    def endpoint(self) -> str:
        """Base URL including the path prefix, e.g. ``http://localhost:15672``."""
        return f"{self.scheme}://{self.host}:{self.port}{self.path_prefix}"

    def api_root(self) -> str:
        """Base URL of the management API, e.g. ``http://localhost:15672/api``."""
        return f"{self.endpoint()}/api"


# --- Operation models ---


class Verb(str, enum.Enum):
    """The four operation verbs understood by the command table."""

    LIST = "list"
    GET = "get"
    DECLARE = "declare"
    DELETE = "delete"


class BindingDestinationType(str, enum.Enum):
    """What a binding routes to."""

    QUEUE = "queue"
    EXCHANGE = "exchange"

    @property
    def path_segment(self) -> str:
        """``q`` or ``e``, as used in binding paths."""
        return self.value[0]


class PageRequest(BaseModel):
    """One page of a paged collection request."""

    model_config = ConfigDict(frozen=True)

    page: int = Field(default=1, ge=1)
    page_size: int = Field(gt=0)


class PageResult(BaseModel):
    """Items returned for one page plus the server's paging metadata."""

    items: list[Any] = Field(default_factory=list)
    returned_count: int = 0
    page: Optional[int] = None
    page_count: Optional[int] = None

    def is_last_page(self, page_size: int) -> bool:
        """Whether no further page should be requested."""
        if self.returned_count < page_size:
            return True
        if self.page is not None and self.page_count is not None:
            return self.page >= self.page_count
        return False


class Operation(BaseModel):
    """What a single CLI invocation asks the broker to do."""

    model_config = ConfigDict(frozen=True)

    resource: str
    verb: Verb
    idempotent: bool = False
    page_request: Optional[PageRequest] = None


# --- Runtime models ---


class RuntimeSettings(BaseModel):
    """Mode switches read from the environment once at startup.

    Stored in the Typer context object so that command classes and handlers
    read them from there rather than from ``os.environ``.
    """

    model_config = ConfigDict(frozen=True)

    non_interactive: bool = False
    infer_subcommands: bool = False
    infer_long_options: bool = False
