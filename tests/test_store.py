"""Tests for videobridge_plugin.core.store module.

Version: 1.0.0

Tests for the configuration backends and the typed port store.
"""

import pytest
import yaml

from videobridge_plugin.core.exceptions import InvalidFormatError, OutOfRangeError
from videobridge_plugin.core.host import HostPropertyMap
from videobridge_plugin.core.settings import (
    ALL_SETTINGS,
    DISABLE_TCP,
    MAX_PORT,
    MIN_PORT,
    SINGLE_PORT,
    TCP_PORT,
)
from videobridge_plugin.core.store import (
    ConfigurationBackend,
    InMemoryConfigurationBackend,
    PortConfigurationStore,
    YamlConfigurationBackend,
)


@pytest.fixture
def backend():
    return InMemoryConfigurationBackend()


@pytest.fixture
def store(backend):
    return PortConfigurationStore(backend)


# =============================================================================
# Backend Tests
# =============================================================================

class TestInMemoryBackend:
    """Tests for InMemoryConfigurationBackend."""

    def test_satisfies_protocol(self, backend):
        """Backend should implement the ConfigurationBackend protocol."""
        assert isinstance(backend, ConfigurationBackend)

    def test_get_int_returns_default_when_absent(self, backend):
        """Missing keys fall back to the default."""
        assert backend.get_int("missing", 42) == 42

    def test_get_int_returns_default_when_unparsable(self, backend):
        """Garbage values fall back to the default."""
        backend.set_property("port", "not-a-number")
        assert backend.get_int("port", 7) == 7

    def test_get_boolean_parses_case_insensitively(self, backend):
        """Boolean reads accept any casing of true/false."""
        backend.set_property("flag", "TRUE")
        assert backend.get_boolean("flag", False) is True
        backend.set_property("flag", "False")
        assert backend.get_boolean("flag", True) is False

    def test_get_boolean_default_for_garbage(self, backend):
        """Unknown boolean strings fall back to the default."""
        backend.set_property("flag", "maybe")
        assert backend.get_boolean("flag", True) is True


class TestYamlBackend:
    """Tests for YamlConfigurationBackend."""

    def test_missing_file_is_empty(self, tmp_path):
        """A missing store file behaves like an empty store."""
        backend = YamlConfigurationBackend(tmp_path / "store.yaml")
        assert backend.get_int("x", 3) == 3

    def test_write_persists_to_disk(self, tmp_path):
        """Writes should be visible to a fresh backend on the same file."""
        path = tmp_path / "nested" / "store.yaml"
        YamlConfigurationBackend(path).set_property("a.b", "12")

        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        assert data == {"a.b": "12"}
        assert YamlConfigurationBackend(path).get_int("a.b", 0) == 12

    def test_loads_non_string_yaml_values(self, tmp_path):
        """Native YAML ints and bools are read back as their string form."""
        path = tmp_path / "store.yaml"
        path.write_text("port: 5000\nflag: true\n", encoding="utf-8")

        backend = YamlConfigurationBackend(path)

        assert backend.get_int("port", 0) == 5000
        assert backend.get_boolean("flag", False) is True

    def test_broken_file_falls_back_to_empty(self, tmp_path):
        """Invalid YAML should not raise."""
        path = tmp_path / "store.yaml"
        path.write_text("key: [unclosed", encoding="utf-8")

        backend = YamlConfigurationBackend(path)

        assert backend.to_dict() == {}

    def test_non_mapping_file_is_ignored(self, tmp_path):
        """A YAML list is not a valid store."""
        path = tmp_path / "store.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        assert YamlConfigurationBackend(path).to_dict() == {}

    def test_failed_write_keeps_previous_value(self, tmp_path):
        """A write that cannot reach the disk is not visible to readers."""
        path = tmp_path / "store.yaml"
        path.mkdir()
        store = PortConfigurationStore(YamlConfigurationBackend(path))

        with pytest.raises(OSError):
            store.set(SINGLE_PORT, "12000")

        assert store.get_single_port() == 10000
        assert [p.name for p in tmp_path.iterdir()] == ["store.yaml"]

    def test_rewrite_replaces_file(self, tmp_path):
        """Successive writes leave one complete file and no temporaries."""
        path = tmp_path / "store.yaml"
        backend = YamlConfigurationBackend(path)
        backend.set_property("a", "1")
        backend.set_property("b", "2")

        assert yaml.safe_load(path.read_text(encoding="utf-8")) == {"a": "1", "b": "2"}
        assert [p.name for p in tmp_path.iterdir()] == ["store.yaml"]


# =============================================================================
# PortConfigurationStore Tests
# =============================================================================

class TestDefaults:
    """Reads from an empty store."""

    def test_integer_defaults(self, store):
        """Empty store should report the documented defaults."""
        assert store.get_single_port() == 10000
        assert store.get_min_port() == 10001
        assert store.get_max_port() == 20000

    def test_tcp_enabled_by_default(self, store):
        """The disable flag defaults to false, so TCP is enabled."""
        assert store.get(DISABLE_TCP) is False
        assert store.is_tcp_enabled() is True

    def test_tcp_port_unset_by_default(self, store):
        """TCP port defaults to None."""
        assert store.get_tcp_port() is None


class TestIntegerSet:
    """Tests for integer writes."""

    @pytest.mark.parametrize("value", [1, 80, 10000, 65535])
    def test_valid_value_round_trips(self, store, value):
        """In-range values are stored and read back."""
        assert store.set(SINGLE_PORT, str(value)) is True
        assert store.get_single_port() == value

    @pytest.mark.parametrize("value", [0, -5, 65536, 100000])
    def test_out_of_range_is_dropped(self, store, value):
        """Out-of-range values leave the previous value in place."""
        store.set(MIN_PORT, "12345")

        assert store.set(MIN_PORT, str(value)) is False
        assert store.get_min_port() == 12345

    def test_out_of_range_on_empty_store_keeps_default(self, store, backend):
        """Dropping a write must not materialize a key."""
        store.set(MAX_PORT, "70000")

        assert store.get_max_port() == 20000
        assert backend.to_dict() == {}

    @pytest.mark.parametrize(
        "raw", ["abc", "", "12.5", None, True, " 12000 ", "1_000", "\u0661\u0662", "0x10"]
    )
    def test_invalid_format_raises(self, store, raw):
        """Unparsable input raises InvalidFormatError."""
        with pytest.raises(InvalidFormatError) as exc_info:
            store.set(SINGLE_PORT, raw)

        assert exc_info.value.setting == "single_port"

    def test_invalid_format_leaves_store_unchanged(self, store):
        """A rejected write keeps the prior value."""
        store.set(SINGLE_PORT, "11000")

        with pytest.raises(InvalidFormatError):
            store.set(SINGLE_PORT, "eleven")

        assert store.get_single_port() == 11000

    def test_accepts_explicit_sign(self, store):
        """A leading sign is part of a decimal integer."""
        store.set(SINGLE_PORT, "+12000")
        assert store.get_single_port() == 12000

    def test_accepts_int_values(self, store):
        """Plain ints are accepted as well as strings."""
        store.set(MAX_PORT, 30000)
        assert store.get_max_port() == 30000

    def test_written_as_decimal_string(self, store, backend):
        """The store's native form is the decimal string."""
        store.set(SINGLE_PORT, "0012000")
        assert backend.to_dict()[SINGLE_PORT.store_key] == "12000"

    def test_validate_reports_range(self, store, backend):
        """validate() raises instead of dropping, and writes nothing."""
        with pytest.raises(OutOfRangeError) as exc_info:
            store.validate(MAX_PORT, "70000")

        assert exc_info.value.valid_range == (1, 65535)
        assert exc_info.value.to_dict()["details"]["raw_value"] == 70000
        assert backend.to_dict() == {}

    def test_validate_returns_parsed_value(self, store):
        assert store.validate(MIN_PORT, "15000") == 15000
        assert store.validate(DISABLE_TCP, "false") is False


class TestBooleanSet:
    """Tests for the TCP disable flag."""

    def test_disable_tcp(self, store):
        """Setting the disable flag turns TCP off."""
        store.set(DISABLE_TCP, "true")
        assert store.is_tcp_enabled() is False

    def test_accepts_bool(self, store):
        """Real booleans are accepted."""
        store.set(DISABLE_TCP, True)
        store.set(DISABLE_TCP, False)
        assert store.is_tcp_enabled() is True

    def test_rejects_garbage(self, store):
        """Anything but true/false is an invalid format."""
        with pytest.raises(InvalidFormatError):
            store.set(DISABLE_TCP, "yes")


class TestTcpPort:
    """Nullable TCP port behaviour."""

    def test_sentinel_maps_to_none(self, store, backend):
        """A stored -1 reads as None."""
        backend.set_property(TCP_PORT.store_key, "-1")
        assert store.get_tcp_port() is None

    @pytest.mark.parametrize("value", [1, 443, 4443, 65535])
    def test_round_trips_ports(self, store, value):
        """Any stored non-sentinel port is returned as-is."""
        store.set(TCP_PORT, str(value))
        assert store.get_tcp_port() == value

    def test_sentinel_write_is_out_of_range(self, store):
        """Writing -1 through set is dropped like any out-of-range value."""
        store.set(TCP_PORT, "4443")
        assert store.set(TCP_PORT, "-1") is False
        assert store.get_tcp_port() == 4443


class TestDelete:
    """Tests for delete()."""

    @pytest.mark.parametrize("setting", ALL_SETTINGS, ids=lambda s: s.name)
    def test_delete_restores_default(self, store, setting):
        """delete() followed by get() returns the default."""
        if setting is DISABLE_TCP:
            store.set(setting, "true")
        else:
            store.set(setting, "5555")

        store.delete(setting)

        assert store.get(setting) == setting.default

    def test_delete_writes_concrete_value(self, store, backend):
        """The key is reset, not removed."""
        store.delete(SINGLE_PORT)
        assert backend.to_dict()[SINGLE_PORT.store_key] == "10000"

    def test_delete_tcp_port_unsets_it(self, store, backend):
        """Deleting the TCP port stores the sentinel."""
        store.set(TCP_PORT, "4443")
        store.delete(TCP_PORT)

        assert backend.to_dict()[TCP_PORT.store_key] == "-1"
        assert store.get_tcp_port() is None


class TestInitializeFromHost:
    """Tests for initialize_from_host()."""

    def test_writes_defaults_when_host_is_empty(self, store, backend):
        """Non-nullable settings get their default written."""
        store.initialize_from_host(HostPropertyMap())

        values = backend.to_dict()
        assert values[SINGLE_PORT.store_key] == "10000"
        assert values[MIN_PORT.store_key] == "10001"
        assert values[MAX_PORT.store_key] == "20000"
        assert values[DISABLE_TCP.store_key] == "false"
        assert TCP_PORT.store_key not in values

    def test_copies_host_values(self, store):
        """Host property values override the defaults."""
        host = HostPropertyMap({
            SINGLE_PORT.host_property: "11000",
            DISABLE_TCP.host_property: True,
            TCP_PORT.host_property: "4443",
        })

        store.initialize_from_host(host)

        assert store.get_single_port() == 11000
        assert store.is_tcp_enabled() is False
        assert store.get_tcp_port() == 4443

    def test_invalid_host_value_is_logged_not_raised(self, store, caplog):
        """A broken host value keeps the store's value."""
        host = HostPropertyMap({MIN_PORT.host_property: "low"})

        store.initialize_from_host(host)

        assert store.get_min_port() == 10001
        assert "min_port" in caplog.text
