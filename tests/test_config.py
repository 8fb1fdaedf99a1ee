"""Tests for connection profile resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from rmqadmin.config import (
    ENV_CONFIG,
    ENV_HOST,
    ENV_NODE,
    ENV_PASSWORD,
    ENV_PORT,
    ENV_TIMEOUT,
    ENV_USERNAME,
    ENV_VHOST,
    config_file_location,
    is_enabled,
    load_config_file,
    parse_config_text,
    read_environment,
    resolve_config,
    resolve_profile,
    resolve_runtime_settings,
    select_alias,
    validate_timeout,
)
from rmqadmin.exceptions import (
    AmbiguousNodeAliasError,
    ConfigError,
    ConfigFileNotFoundError,
    ConfigParseError,
    InvalidTimeoutError,
    MissingCredentialError,
    UnknownNodeAliasError,
)
from rmqadmin.exit_codes import EXIT_CONFIG_ERROR, EXIT_INVALID_USAGE
from rmqadmin.models import CliFlags, ConfigFile, NodeAlias, TableStyle


def _alias_file(**fields) -> ConfigFile:
    return ConfigFile(
        path="test.conf",
        aliases={"local": NodeAlias(name="local", default=True, **fields)},
    )


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


class TestDefaults:
    def test_all_defaults(self) -> None:
        profile = resolve_profile(CliFlags(), {}, None)
        assert profile.scheme == "http"
        assert profile.host == "localhost"
        assert profile.port == 15672
        assert profile.path_prefix == ""
        assert profile.vhost == "/"
        assert profile.username == "guest"
        assert profile.password == "guest"
        assert profile.timeout == 60
        assert profile.endpoint() == "http://localhost:15672"
        assert profile.api_root() == "http://localhost:15672/api"

    def test_https_defaults_to_tls_port(self) -> None:
        profile = resolve_profile(CliFlags(use_tls=True), {}, None)
        assert profile.scheme == "https"
        assert profile.port == 15671

    def test_profile_is_immutable(self) -> None:
        profile = resolve_profile(CliFlags(), {}, None)
        with pytest.raises(Exception):
            profile.host = "elsewhere"  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Precedence: flag > env > alias > default, per field
# ---------------------------------------------------------------------------


class TestPrecedence:
    @pytest.mark.parametrize(
        "field, flag_value, env_var, env_value, alias_value",
        [
            ("host", "flag-host", ENV_HOST, "env-host", "alias-host"),
            ("port", 1001, ENV_PORT, "1002", 1003),
            ("vhost", "flag-vh", ENV_VHOST, "env-vh", "alias-vh"),
            ("timeout", 11, ENV_TIMEOUT, "12", 13),
        ],
    )
    def test_each_level_overrides_the_next(
        self, field, flag_value, env_var, env_value, alias_value
    ) -> None:
        config = _alias_file(**{field: alias_value})
        flags = CliFlags(**{field: flag_value})
        env = {env_var: env_value}

        assert getattr(resolve_profile(flags, env, config), field) == flag_value
        assert str(getattr(resolve_profile(CliFlags(), env, config), field)) == env_value
        assert getattr(resolve_profile(CliFlags(), {}, config), field) == alias_value

    def test_credentials_follow_precedence(self) -> None:
        config = _alias_file(username="alias-user", password="alias-pass")
        env = {ENV_USERNAME: "env-user", ENV_PASSWORD: "env-pass"}

        profile = resolve_profile(CliFlags(username="flag-user", password="flag-pass"), env, config)
        assert (profile.username, profile.password) == ("flag-user", "flag-pass")

        profile = resolve_profile(CliFlags(), env, config)
        assert (profile.username, profile.password) == ("env-user", "env-pass")

        profile = resolve_profile(CliFlags(), {}, config)
        assert (profile.username, profile.password) == ("alias-user", "alias-pass")

    def test_empty_flag_falls_through_to_environment(self) -> None:
        profile = resolve_profile(CliFlags(host=""), {ENV_HOST: "env-host"}, None)
        assert profile.host == "env-host"

    def test_empty_flag_falls_through_to_alias(self) -> None:
        config = _alias_file(vhost="alias-vh", username="alias-user")
        profile = resolve_profile(CliFlags(vhost="", username=""), {}, config)
        assert (profile.vhost, profile.username) == ("alias-vh", "alias-user")

    def test_sources_mix_across_fields(self) -> None:
        config = _alias_file(host="alias-host", port=1003, vhost="alias-vh")
        profile = resolve_profile(CliFlags(port=1001), {ENV_VHOST: "env-vh"}, config)
        assert profile.host == "alias-host"
        assert profile.port == 1001
        assert profile.vhost == "env-vh"

    def test_base_uri_expands_into_fields(self) -> None:
        profile = resolve_profile(
            CliFlags(base_uri="https://rabbit.example:16000/mgmt/"), {}, None
        )
        assert profile.scheme == "https"
        assert profile.host == "rabbit.example"
        assert profile.port == 16000
        assert profile.path_prefix == "/mgmt"
        assert profile.api_root() == "https://rabbit.example:16000/mgmt/api"

    def test_explicit_field_beats_base_uri_at_same_level(self) -> None:
        profile = resolve_profile(
            CliFlags(base_uri="http://rabbit.example:16000", port=17000), {}, None
        )
        assert profile.port == 17000

    def test_alias_tls_switches_scheme(self) -> None:
        profile = resolve_profile(CliFlags(), {}, _alias_file(tls=True))
        assert profile.scheme == "https"
        assert profile.port == 15671

    def test_path_prefix_is_normalized(self) -> None:
        profile = resolve_profile(CliFlags(path_prefix="rabbit/"), {}, None)
        assert profile.path_prefix == "/rabbit"

    def test_table_style_from_alias(self) -> None:
        profile = resolve_profile(CliFlags(), {}, _alias_file(table_style="markdown"))
        assert profile.table_style is TableStyle.MARKDOWN

    def test_insecure_disables_verification(self) -> None:
        assert resolve_profile(CliFlags(insecure=True), {}, None).verify_tls is False


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


class TestCredentials:
    def test_username_without_password_uses_default_password(self) -> None:
        profile = resolve_profile(CliFlags(username="ops"), {}, None)
        assert (profile.username, profile.password) == ("ops", "guest")

    def test_password_without_username_uses_default_username(self) -> None:
        profile = resolve_profile(CliFlags(password="s3cret"), {}, None)
        assert profile.username == "guest"
        assert profile.password == "s3cret"

    def test_username_and_password_resolve_independently(self) -> None:
        config = _alias_file(password="alias-pass")
        profile = resolve_profile(CliFlags(), {ENV_USERNAME: "env-user"}, config)
        assert (profile.username, profile.password) == ("env-user", "alias-pass")

    def test_blank_password_fails(self) -> None:
        config = _alias_file(username="ops", password="   ")
        with pytest.raises(MissingCredentialError) as exc_info:
            resolve_profile(CliFlags(), {}, config)
        assert exc_info.value.exit_code == EXIT_CONFIG_ERROR

    def test_empty_alias_password_falls_back_to_default(self) -> None:
        profile = resolve_profile(CliFlags(), {}, _alias_file(username="ops", password=""))
        assert profile.password == "guest"

    def test_empty_env_values_are_ignored(self) -> None:
        profile = resolve_profile(CliFlags(), {ENV_USERNAME: "", ENV_PASSWORD: ""}, None)
        assert (profile.username, profile.password) == ("guest", "guest")


# ---------------------------------------------------------------------------
# Timeout validation
# ---------------------------------------------------------------------------


class TestTimeout:
    @pytest.mark.parametrize("value", [0, -1, "0", "abc", "1.5", True])
    def test_invalid_values_rejected(self, value) -> None:
        with pytest.raises(InvalidTimeoutError) as exc_info:
            validate_timeout(value)
        assert exc_info.value.exit_code == EXIT_INVALID_USAGE

    def test_string_is_parsed(self) -> None:
        assert validate_timeout(" 30 ") == 30

    def test_invalid_env_timeout_fails_resolution(self) -> None:
        with pytest.raises(InvalidTimeoutError):
            resolve_profile(CliFlags(), {ENV_TIMEOUT: "-5"}, None)

    def test_invalid_flag_timeout_fails_before_reading_files(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        import rmqadmin.config as config_module

        def _fail(*args, **kwargs):
            raise AssertionError("config file must not be read")

        monkeypatch.setattr(config_module, "load_config_file", _fail)
        with pytest.raises(InvalidTimeoutError):
            resolve_config(CliFlags(timeout=0, config=str(tmp_path / "x.conf")), environ={})

    def test_invalid_timeout_is_a_config_error(self) -> None:
        assert issubclass(InvalidTimeoutError, ConfigError)


# ---------------------------------------------------------------------------
# Config file
# ---------------------------------------------------------------------------


class TestConfigFile:
    def test_parse_sections(self) -> None:
        config = parse_config_text(
            """
            [staging]
            default = true
            hostname = "rabbit.staging"
            port = 15673
            virtual_host = "events"
            unknown_key = "ignored"

            [production]
            base_uri = "https://rabbit.prod:15671"
            """,
            "test.conf",
        )
        assert set(config.aliases) == {"staging", "production"}
        staging = config.aliases["staging"]
        assert staging.host == "rabbit.staging"
        assert staging.vhost == "events"
        assert staging.port == 15673

    def test_invalid_toml(self) -> None:
        with pytest.raises(ConfigParseError):
            parse_config_text("[broken", "test.conf")

    def test_non_table_entry(self) -> None:
        with pytest.raises(ConfigParseError):
            parse_config_text('host = "x"', "test.conf")

    def test_wrong_value_type(self) -> None:
        with pytest.raises(ConfigParseError):
            parse_config_text('[local]\nport = "not-a-port"', "test.conf")

    def test_missing_explicit_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigFileNotFoundError):
            load_config_file(tmp_path / "missing.conf", explicit=True)

    def test_missing_default_file_is_ignored(self, tmp_path: Path) -> None:
        assert load_config_file(tmp_path / "missing.conf", explicit=False) is None

    def test_location_precedence(self) -> None:
        path, explicit = config_file_location(CliFlags(config="/a.conf"), {ENV_CONFIG: "/b.conf"})
        assert (str(path), explicit) == ("/a.conf", True)
        path, explicit = config_file_location(CliFlags(), {ENV_CONFIG: "/b.conf"})
        assert (str(path), explicit) == ("/b.conf", True)
        path, explicit = config_file_location(CliFlags(), {})
        assert path.name == ".rabbitmqadmin.conf"
        assert explicit is False


class TestAliasSelection:
    def _config(self, *names: str, defaults: tuple[str, ...] = ()) -> ConfigFile:
        return ConfigFile(
            path="test.conf",
            aliases={
                n: NodeAlias(name=n, default=n in defaults, host=f"{n}.host") for n in names
            },
        )

    def test_marked_default_is_used(self) -> None:
        config = self._config("a", "b", defaults=("b",))
        assert resolve_profile(CliFlags(), {}, config).host == "b.host"

    def test_section_named_default_is_used(self) -> None:
        config = self._config("default", "other")
        assert select_alias(CliFlags(), {}, config).name == "default"

    def test_flag_beats_env_node(self) -> None:
        config = self._config("a", "b", defaults=("a",))
        assert select_alias(CliFlags(node="b"), {ENV_NODE: "a"}, config).name == "b"
        assert select_alias(CliFlags(), {ENV_NODE: "b"}, config).name == "b"

    def test_no_default_is_ambiguous(self) -> None:
        with pytest.raises(AmbiguousNodeAliasError):
            resolve_profile(CliFlags(), {}, self._config("a", "b"))

    def test_several_defaults_are_ambiguous(self) -> None:
        with pytest.raises(AmbiguousNodeAliasError):
            select_alias(CliFlags(), {}, self._config("a", "b", defaults=("a", "b")))

    def test_unknown_alias(self) -> None:
        with pytest.raises(UnknownNodeAliasError):
            select_alias(CliFlags(node="missing"), {}, self._config("a", defaults=("a",)))

    def test_alias_requested_without_file(self) -> None:
        with pytest.raises(UnknownNodeAliasError):
            select_alias(CliFlags(node="a"), {}, None)

    def test_empty_file_selects_nothing(self) -> None:
        assert select_alias(CliFlags(), {}, ConfigFile(path="test.conf")) is None


class TestResolveConfig:
    def test_reads_file_and_environment(self, write_config) -> None:
        path = write_config('[local]\ndefault = true\nhost = "file-host"\nport = 15680\n')
        profile = resolve_config(
            CliFlags(config=str(path)), environ={ENV_PORT: "15690", "OTHER": "x"}
        )
        assert profile.host == "file-host"
        assert profile.port == 15690


# ---------------------------------------------------------------------------
# Environment switches
# ---------------------------------------------------------------------------


class TestRuntimeSettings:
    @pytest.mark.parametrize("value", ["true", "TRUE", " True ", "tRuE"])
    def test_truthy(self, value: str) -> None:
        assert is_enabled(value) is True

    @pytest.mark.parametrize("value", [None, "", "1", "yes", "on", "false", "truthy"])
    def test_falsy(self, value) -> None:
        assert is_enabled(value) is False

    def test_resolve_runtime_settings(self) -> None:
        settings = resolve_runtime_settings(
            {
                "RABBITMQADMIN_NON_INTERACTIVE_MODE": "true",
                "RABBITMQADMIN_INFER_SUBCOMMANDS": "1",
                "RABBITMQADMIN_INFER_LONG_OPTIONS": "True",
            }
        )
        assert settings.non_interactive is True
        assert settings.infer_subcommands is False
        assert settings.infer_long_options is True

    def test_read_environment_keeps_only_prefixed_vars(self) -> None:
        env = read_environment({ENV_HOST: "h", "PATH": "/bin"})
        assert env == {ENV_HOST: "h"}
