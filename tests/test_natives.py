"""Tests for videobridge_plugin.core.natives module.

Version: 1.0.0

Tests for platform detection, the library path resolver and native
archive extraction.
"""

import os
import zipfile
from pathlib import Path
from unittest.mock import patch

import pytest

from videobridge_plugin.core.exceptions import BootstrapError
from videobridge_plugin.core.natives import (
    LibraryPathResolver,
    NativeResourceBootstrapper,
    archive_path_for,
    detect_platform,
)

SUFFIX = "-native-linux-64"


@pytest.fixture
def environ():
    return {"LD_LIBRARY_PATH": "/usr/lib"}


@pytest.fixture
def resolver(environ):
    return LibraryPathResolver(variable="LD_LIBRARY_PATH", environ=environ)


@pytest.fixture
def binary(tmp_path):
    path = tmp_path / "videobridge.zip"
    path.write_bytes(b"plugin")
    return path


def make_archive(binary: Path, entries: dict) -> Path:
    """Create the platform archive next to ``binary``."""
    archive = archive_path_for(binary, SUFFIX)
    with zipfile.ZipFile(archive, "w") as zf:
        for name, data in entries.items():
            if name.endswith("/"):
                zf.writestr(zipfile.ZipInfo(name), b"")
            else:
                zf.writestr(name, data)
    return archive


def make_bootstrapper(binary, resolver, suffix=SUFFIX):
    return NativeResourceBootstrapper(
        binary, path_resolver=resolver, platform_detector=lambda: suffix
    )


# =============================================================================
# Platform detection
# =============================================================================

class TestDetectPlatform:
    """Tests for detect_platform()."""

    @pytest.mark.parametrize(
        "system, bits, expected",
        [
            ("Linux", 64, "-native-linux-64"),
            ("Linux", 32, "-native-linux-32"),
            ("Windows", 64, "-native-windows-64"),
            ("Windows", 32, "-native-windows-32"),
            ("Darwin", 64, "-native-macosx"),
            ("FreeBSD", 64, None),
        ],
    )
    def test_maps_systems(self, system, bits, expected):
        assert detect_platform(system, bits) == expected

    def test_archive_name_inserts_suffix(self):
        """The suffix goes between the stem and the extension."""
        assert archive_path_for(Path("/p/videobridge.zip"), SUFFIX) == Path(
            "/p/videobridge-native-linux-64.zip"
        )


# =============================================================================
# LibraryPathResolver
# =============================================================================

class TestLibraryPathResolver:
    """Tests for LibraryPathResolver."""

    def test_prepend_puts_directory_first(self, resolver, environ):
        resolver.prepend("/opt/native")

        assert environ["LD_LIBRARY_PATH"] == os.pathsep.join(["/opt/native", "/usr/lib"])

    def test_prepend_does_not_duplicate(self, resolver, environ):
        """Repeated prepends keep a single entry."""
        resolver.prepend("/opt/native")
        resolver.prepend("/opt/native")

        assert environ["LD_LIBRARY_PATH"].split(os.pathsep) == ["/opt/native", "/usr/lib"]

    def test_prepend_on_empty_variable(self):
        environ = {}
        LibraryPathResolver(variable="LD_LIBRARY_PATH", environ=environ).prepend("/a")
        assert environ["LD_LIBRARY_PATH"] == "/a"

    def test_prepend_invalidates_cached_resolution(self, resolver):
        """A cached search path is re-read lazily after prepend."""
        assert resolver.search_path() == [Path("/usr/lib")]
        assert resolver.is_resolved() is True

        resolver.prepend("/opt/native")

        assert resolver.is_resolved() is False
        assert resolver.search_path() == [Path("/opt/native"), Path("/usr/lib")]

    def test_invalidate_rereads_environment(self, resolver, environ):
        """External changes are picked up after invalidate()."""
        resolver.search_path()
        environ["LD_LIBRARY_PATH"] = "/opt/other"

        assert resolver.search_path() == [Path("/usr/lib")]
        resolver.invalidate()
        assert resolver.search_path() == [Path("/opt/other")]

    def test_find_library(self, tmp_path, environ):
        """Libraries are found in the search path."""
        (tmp_path / "libopus.so").write_bytes(b"")
        resolver = LibraryPathResolver(variable="LD_LIBRARY_PATH", environ=environ)
        resolver.prepend(tmp_path)

        with patch("videobridge_plugin.core.natives.sys.platform", "linux"):
            assert resolver.find_library("opus") == tmp_path / "libopus.so"
            assert resolver.find_library("missing") is None


# =============================================================================
# NativeResourceBootstrapper
# =============================================================================

class TestEnsureNativeResources:
    """Tests for NativeResourceBootstrapper.ensure_native_resources()."""

    def test_extracts_root_files_only(self, binary, resolver):
        """Only flat files at the archive root are extracted."""
        make_archive(binary, {
            "libopus.so": b"opus",
            "libjnvpx.so": b"vpx",
            "META-INF/": b"",
            "META-INF/MANIFEST.MF": b"manifest",
            "nested/libskip.so": b"skip",
        })

        outcome = make_bootstrapper(binary, resolver).ensure_native_resources()

        native_dir = binary.parent / "native"
        assert sorted(outcome.extracted) == ["libjnvpx.so", "libopus.so"]
        assert sorted(p.name for p in native_dir.iterdir()) == ["libjnvpx.so", "libopus.so"]
        assert (native_dir / "libopus.so").read_bytes() == b"opus"
        assert outcome.platform == SUFFIX
        assert outcome.already_present is False
        assert outcome.published is True

    def test_publishes_directory_on_library_path(self, binary, resolver, environ):
        """The native directory is prepended to the search path."""
        make_archive(binary, {"libopus.so": b"opus"})

        make_bootstrapper(binary, resolver).ensure_native_resources()

        first = environ["LD_LIBRARY_PATH"].split(os.pathsep)[0]
        assert first == str((binary.parent / "native").resolve())

    def test_second_call_is_noop(self, binary, resolver):
        """An existing directory means bootstrap is already done."""
        make_archive(binary, {"libopus.so": b"opus"})
        bootstrapper = make_bootstrapper(binary, resolver)
        bootstrapper.ensure_native_resources()
        (binary.parent / "native" / "libopus.so").write_bytes(b"patched")

        outcome = bootstrapper.ensure_native_resources()

        assert outcome.already_present is True
        assert outcome.extracted == ()
        assert (binary.parent / "native" / "libopus.so").read_bytes() == b"patched"

    def test_existing_directory_is_still_published(self, binary, resolver, environ):
        """Later starts put the directory on the path again."""
        (binary.parent / "native").mkdir()

        make_bootstrapper(binary, resolver).ensure_native_resources()

        assert str((binary.parent / "native").resolve()) in environ["LD_LIBRARY_PATH"]

    def test_unknown_platform_extracts_nothing(self, binary, resolver, environ, caplog):
        """Unsupported platforms log a warning and succeed."""
        outcome = make_bootstrapper(binary, resolver, suffix=None).ensure_native_resources()

        assert outcome.native_dir is None
        assert outcome.published is False
        assert not (binary.parent / "native").exists()
        assert environ["LD_LIBRARY_PATH"] == "/usr/lib"
        assert "Unable to determine" in caplog.text

    def test_missing_archive_raises_and_cleans_up(self, binary, resolver):
        """A missing archive is a BootstrapError and leaves no directory."""
        with pytest.raises(BootstrapError) as exc_info:
            make_bootstrapper(binary, resolver).ensure_native_resources()

        assert exc_info.value.reason == BootstrapError.ARCHIVE_UNREADABLE
        assert not (binary.parent / "native").exists()

    def test_corrupt_archive_raises(self, binary, resolver):
        """A file that is not a zip archive is unreadable."""
        archive_path_for(binary, SUFFIX).write_bytes(b"not a zip")

        with pytest.raises(BootstrapError) as exc_info:
            make_bootstrapper(binary, resolver).ensure_native_resources()

        assert exc_info.value.reason == BootstrapError.ARCHIVE_UNREADABLE

    def test_mkdir_failure_raises(self, binary, resolver):
        """Failing to create the directory is a BootstrapError."""
        with patch.object(Path, "mkdir", side_effect=PermissionError("denied")):
            with pytest.raises(BootstrapError) as exc_info:
                make_bootstrapper(binary, resolver).ensure_native_resources()

        assert exc_info.value.reason == BootstrapError.MKDIR_FAILED

    def test_entry_failure_does_not_abort(self, binary, resolver, caplog):
        """A failing entry is logged and the others are still extracted."""
        make_archive(binary, {"a.so": b"a", "b.so": b"b", "c.so": b"c"})
        real_open = zipfile.ZipFile.open

        def flaky_open(self, name, *args, **kwargs):
            filename = getattr(name, "filename", name)
            if filename == "b.so":
                raise OSError("read error")
            return real_open(self, name, *args, **kwargs)

        with patch.object(zipfile.ZipFile, "open", flaky_open):
            outcome = make_bootstrapper(binary, resolver).ensure_native_resources()

        assert sorted(outcome.extracted) == ["a.so", "c.so"]
        assert "b.so" in caplog.text

    def test_custom_directory_name(self, binary, resolver):
        make_archive(binary, {"libopus.so": b"opus"})
        bootstrapper = NativeResourceBootstrapper(
            binary,
            path_resolver=resolver,
            platform_detector=lambda: SUFFIX,
            native_dir_name="natives",
        )

        outcome = bootstrapper.ensure_native_resources()

        assert outcome.native_dir == binary.parent / "natives"
