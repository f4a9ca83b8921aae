"""Native resource bootstrap for the videobridge.

Version: 1.0.0

The videobridge ships optional native acceleration libraries in one archive
per platform, next to the plugin binary:

    plugins/videobridge.zip
    plugins/videobridge-native-linux-64.zip
    plugins/videobridge-native-windows-64.zip
    ...

On first start (after install or update) the archive for the running
platform is extracted flat into ``plugins/native/`` and that directory is
prepended to the process library search path. Later starts find the
directory and only publish it on the search path again.

Missing natives never prevent the videobridge from starting; the matching
acceleration path is simply unavailable.
"""

from __future__ import annotations

import logging
import os
import platform
import shutil
import struct
import sys
import threading
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, MutableMapping, Optional, Tuple, Union

from videobridge_plugin.core.exceptions import BootstrapError

logger = logging.getLogger(__name__)

DEFAULT_NATIVE_DIR_NAME = "native"

PlatformDetector = Callable[[], Optional[str]]


# =============================================================================
# PLATFORM DETECTION
# =============================================================================

def detect_platform(
    system: Optional[str] = None,
    pointer_bits: Optional[int] = None,
) -> Optional[str]:
    """Return the native archive suffix for the running platform.

    Args:
        system: Override for ``platform.system()``
        pointer_bits: Override for the interpreter pointer width

    Returns:
        Suffix such as ``-native-linux-64``, or None for unsupported systems
    """
    system = (system or platform.system()).lower()
    bits = pointer_bits or struct.calcsize("P") * 8

    if system == "linux":
        return "-native-linux-64" if bits == 64 else "-native-linux-32"
    if system == "windows":
        return "-native-windows-64" if bits == 64 else "-native-windows-32"
    if system == "darwin":
        return "-native-macosx"
    return None


def default_library_path_variable() -> str:
    """Environment variable holding the native library search path."""
    if sys.platform == "win32":
        return "PATH"
    if sys.platform == "darwin":
        return "DYLD_LIBRARY_PATH"
    return "LD_LIBRARY_PATH"


def archive_path_for(binary_path: Path, platform_suffix: str) -> Path:
    """Insert ``platform_suffix`` into the binary file name, before its extension."""
    return binary_path.with_name(f"{binary_path.stem}{platform_suffix}{binary_path.suffix}")


# =============================================================================
# LIBRARY SEARCH PATH
# =============================================================================

class LibraryPathResolver:
    """Process-wide native library search path with a lazily resolved cache.

    ``prepend`` updates the underlying environment variable and invalidates
    the cached resolution; the next ``search_path`` call re-reads it.
    """

    def __init__(
        self,
        variable: Optional[str] = None,
        environ: Optional[MutableMapping[str, str]] = None,
    ) -> None:
        self._variable = variable or default_library_path_variable()
        self._environ = environ if environ is not None else os.environ
        self._lock = threading.Lock()
        self._resolved: Optional[List[Path]] = None

    @property
    def variable(self) -> str:
        return self._variable

    def prepend(self, directory: Union[str, Path]) -> None:
        entry = str(directory)
        with self._lock:
            current = self._environ.get(self._variable, "")
            parts = [p for p in current.split(os.pathsep) if p and p != entry]
            self._environ[self._variable] = os.pathsep.join([entry, *parts])
            self._resolved = None
        logger.debug("Prepended %s to %s", entry, self._variable)

    def invalidate(self) -> None:
        with self._lock:
            self._resolved = None

    def is_resolved(self) -> bool:
        with self._lock:
            return self._resolved is not None

    def search_path(self) -> List[Path]:
        with self._lock:
            if self._resolved is None:
                raw = self._environ.get(self._variable, "")
                self._resolved = [Path(p) for p in raw.split(os.pathsep) if p]
            return list(self._resolved)

    def find_library(self, name: str) -> Optional[Path]:
        """Locate a native library by its short name (``"opus"``)."""
        candidates = _library_file_names(name)
        for directory in self.search_path():
            for candidate in candidates:
                path = directory / candidate
                if path.is_file():
                    return path
        return None


def _library_file_names(name: str) -> Tuple[str, ...]:
    if sys.platform == "win32":
        return (f"{name}.dll", f"lib{name}.dll")
    if sys.platform == "darwin":
        return (f"lib{name}.dylib", f"lib{name}.jnilib")
    return (f"lib{name}.so",)


# =============================================================================
# BOOTSTRAPPER
# =============================================================================

@dataclass(frozen=True)
class BootstrapOutcome:
    """Result of a bootstrap run."""

    native_dir: Optional[Path]
    platform: Optional[str]
    extracted: Tuple[str, ...] = ()
    already_present: bool = False

    @property
    def published(self) -> bool:
        """True when the native directory was put on the library path."""
        return self.native_dir is not None


class NativeResourceBootstrapper:
    """Extracts the platform native archive next to the plugin binary.

    Usage:
        bootstrapper = NativeResourceBootstrapper(Path("plugins/videobridge.zip"))
        outcome = bootstrapper.ensure_native_resources()
    """

    def __init__(
        self,
        binary_path: Union[str, Path],
        path_resolver: Optional[LibraryPathResolver] = None,
        platform_detector: PlatformDetector = detect_platform,
        native_dir_name: str = DEFAULT_NATIVE_DIR_NAME,
    ) -> None:
        self._binary_path = Path(binary_path)
        self._path_resolver = path_resolver or LibraryPathResolver()
        self._platform_detector = platform_detector
        self._native_dir_name = native_dir_name

    @property
    def native_dir(self) -> Path:
        return self._binary_path.parent / self._native_dir_name

    @property
    def path_resolver(self) -> LibraryPathResolver:
        return self._path_resolver

    def ensure_native_resources(self) -> BootstrapOutcome:
        """Make sure the native directory exists and is on the library path.

        Safe to call on every start: an existing directory is taken as a
        completed bootstrap.

        Returns:
            BootstrapOutcome describing what was done

        Raises:
            BootstrapError: If the directory cannot be created or the
                archive cannot be read
        """
        native_dir = self.native_dir

        if native_dir.exists():
            logger.info("Native lib folder already exists: %s", native_dir)
            self._publish(native_dir)
            return BootstrapOutcome(native_dir=native_dir, platform=None, already_present=True)

        platform_suffix = self._platform_detector()
        if platform_suffix is None:
            logger.warning("Unable to determine what the native libraries are for this OS.")
            return BootstrapOutcome(native_dir=None, platform=None)

        try:
            native_dir.mkdir(parents=True)
        except OSError as e:
            logger.warning("Unable to create native lib folder %s: %s", native_dir, e)
            raise BootstrapError(
                "Unable to create native lib folder",
                BootstrapError.MKDIR_FAILED,
                path=str(native_dir),
            ) from e

        archive_path = archive_path_for(self._binary_path.resolve(), platform_suffix)
        logger.debug("Applicable native archive: '%s'", archive_path)

        extracted = self._extract(archive_path, native_dir)
        logger.info("Native lib folder created and %d natives extracted", len(extracted))

        self._publish(native_dir)
        return BootstrapOutcome(
            native_dir=native_dir,
            platform=platform_suffix,
            extracted=tuple(extracted),
        )

    def _extract(self, archive_path: Path, native_dir: Path) -> List[str]:
        try:
            archive = zipfile.ZipFile(archive_path)
        except (OSError, zipfile.BadZipFile) as e:
            # Leave no empty folder behind so the next start tries again.
            self._discard_empty_dir(native_dir)
            raise BootstrapError(
                f"Unable to read native archive: {e}",
                BootstrapError.ARCHIVE_UNREADABLE,
                path=str(archive_path),
            ) from e

        extracted: List[str] = []
        with archive:
            for entry in archive.infolist():
                # Only files at the archive root are natives.
                if entry.is_dir() or "/" in entry.filename or entry.filename in ("", ".", ".."):
                    continue
                target = native_dir / entry.filename
                logger.debug("Copying '%s' from native archive into '%s'", entry.filename, target)
                try:
                    with archive.open(entry) as source, open(target, "wb") as destination:
                        shutil.copyfileobj(source, destination)
                    extracted.append(entry.filename)
                except Exception as e:
                    logger.warning(
                        "An unexpected error occurred while copying native library %s: %s",
                        entry.filename,
                        e,
                        exc_info=True,
                    )
        return extracted

    @staticmethod
    def _discard_empty_dir(directory: Path) -> None:
        try:
            directory.rmdir()
        except OSError as e:
            logger.warning("Could not remove native lib folder %s: %s", directory, e)

    def _publish(self, native_dir: Path) -> None:
        self._path_resolver.prepend(native_dir.resolve())
