"""Lifecycle controller attaching the videobridge to a host server.

Version: 1.0.0

States:
    UNINITIALIZED -> BOOTSTRAPPING -> REGISTERING -> ACTIVE -> DESTROYED

Without an explicit PluginConfig, ``videobridge_plugin.yaml`` is read from
the directory of the plugin binary and its logging section applied to the
plugin logger.

A failed registration goes straight to DESTROYED with every reference
cleared. Neither ``initialize`` nor ``destroy`` ever raise: the host server
must keep running whatever happens to this plugin.

Usage:
    plugin = VideobridgePlugin()
    plugin.initialize(handles)
    ...
    plugin.restart_needed()
    plugin.destroy()
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

from videobridge_plugin.config import PluginConfig, load_config
from videobridge_plugin.core.events import PropertyEventDispatcher, PropertySubscription
from videobridge_plugin.core.exceptions import (
    BootstrapError,
    ComponentError,
    PluginNotRunningError,
    RegistrationError,
)
from videobridge_plugin.core.host import ComponentManager, HostProperties, ServerInfo
from videobridge_plugin.core.listener import PropertyChangeListener
from videobridge_plugin.core.logging_utils import configure_logging, detach_file_handler
from videobridge_plugin.core.natives import LibraryPathResolver, NativeResourceBootstrapper
from videobridge_plugin.core.runtime_configuration import RuntimeConfiguration, StartupSnapshot
from videobridge_plugin.core.store import ConfigurationBackend, PortConfigurationStore

logger = logging.getLogger(__name__)


class LifecycleState(str, Enum):
    """Lifecycle states of the plugin."""

    UNINITIALIZED = "uninitialized"
    BOOTSTRAPPING = "bootstrapping"
    REGISTERING = "registering"
    ACTIVE = "active"
    DESTROYED = "destroyed"


@dataclass(frozen=True)
class ComponentContext:
    """Everything the videobridge component needs before it is constructed.

    The component was designed as an external component; inside a host
    server it has no port or secret of its own.
    """

    hostname: str
    domain: str
    subdomain: str
    port: int = -1
    secret: Optional[str] = None
    rest_api_enabled: bool = False


ComponentFactory = Callable[[ComponentContext], Any]


@dataclass
class HostHandles:
    """Host-side collaborators handed to the plugin on initialization."""

    component_manager: ComponentManager
    host_properties: HostProperties
    configuration_backend: ConfigurationBackend
    dispatcher: PropertyEventDispatcher
    server_info: ServerInfo
    component_factory: ComponentFactory
    binary_path: Optional[Path] = None
    library_path_resolver: Optional[LibraryPathResolver] = None


@dataclass(frozen=True)
class ComponentRegistration:
    """A component registered with the host; all fields are always set."""

    manager: ComponentManager
    component: Any
    subdomain: str


class VideobridgePlugin:
    """Host plugin wrapping the videobridge component.

    Owns the component registration, the startup snapshot and the property
    listener subscription for the lifetime of one plugin instance.
    """

    def __init__(self, config: Optional[PluginConfig] = None) -> None:
        """
        Args:
            config: Plugin configuration. When omitted, ``initialize`` reads
                ``videobridge_plugin.yaml`` next to the plugin binary.
        """
        self._explicit_config = config is not None
        self._config = config or PluginConfig()
        self._log_handler: Optional[logging.FileHandler] = None
        self._lock = threading.RLock()
        self._state = LifecycleState.UNINITIALIZED
        self._registration: Optional[ComponentRegistration] = None
        self._runtime: Optional[RuntimeConfiguration] = None
        self._dispatcher: Optional[PropertyEventDispatcher] = None
        self._subscription: Optional[PropertySubscription] = None

    # =========================================================================
    # Host lifecycle callbacks
    # =========================================================================

    def initialize(self, handles: HostHandles) -> None:
        """Bootstrap natives, register the component and take the snapshot."""
        with self._lock:
            if self._state is not LifecycleState.UNINITIALIZED:
                logger.warning(
                    "Plugin initialize called in state %s, ignoring", self._state.value
                )
                return

            self._load_configuration(handles)

            self._state = LifecycleState.BOOTSTRAPPING
            self._bootstrap(handles)

            self._state = LifecycleState.REGISTERING
            try:
                self._activate(handles)
            except Exception as e:
                logger.error(
                    "An exception occurred when loading the plugin: "
                    "the component could not be added: %s", e, exc_info=True
                )
                self._clear()
                self._state = LifecycleState.DESTROYED
                return

            self._state = LifecycleState.ACTIVE
            logger.info(
                "Videobridge component registered as '%s'", self._config.component.subdomain
            )

    def destroy(self) -> None:
        """Release everything acquired by ``initialize``. Never raises."""
        with self._lock:
            if self._dispatcher is not None:
                self._dispatcher.unsubscribe(self._subscription)

            if self._registration is not None:
                self._remove_component(self._registration)

            self._clear()
            self._state = LifecycleState.DESTROYED
            logger.info("Videobridge plugin destroyed")
            detach_file_handler(self._log_handler)
            self._log_handler = None

    # =========================================================================
    # Status queries
    # =========================================================================

    @property
    def config(self) -> PluginConfig:
        return self._config

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is LifecycleState.ACTIVE

    @property
    def subdomain(self) -> Optional[str]:
        registration = self._registration
        return registration.subdomain if registration else None

    def get_component_handle(self) -> Optional[Any]:
        """Return the registered component, or None when not running."""
        registration = self._registration
        return registration.component if registration else None

    def get_snapshot(self) -> StartupSnapshot:
        return self._require_runtime("read the startup snapshot").snapshot

    def get_runtime_configuration(self) -> RuntimeConfiguration:
        return self._require_runtime("read the runtime configuration")

    def get_single_port(self) -> int:
        return self._require_runtime("read the single port").get_single_port()

    def get_min_port(self) -> int:
        return self._require_runtime("read the minimum port").get_min_port()

    def get_max_port(self) -> int:
        return self._require_runtime("read the maximum port").get_max_port()

    def is_tcp_enabled(self) -> bool:
        return self._require_runtime("read the TCP flag").is_tcp_enabled()

    def get_tcp_port(self) -> Optional[int]:
        return self._require_runtime("read the TCP port").get_tcp_port()

    def restart_needed(self) -> bool:
        """Checks if the plugin requires a restart to apply pending configuration changes.

        Raises:
            PluginNotRunningError: If no startup snapshot exists
        """
        return self._require_runtime("evaluate restart").restart_needed()

    # =========================================================================
    # Internals
    # =========================================================================

    def _require_runtime(self, operation: str) -> RuntimeConfiguration:
        runtime = self._runtime
        if runtime is None:
            raise PluginNotRunningError(operation, self._state.value)
        return runtime

    def _load_configuration(self, handles: HostHandles) -> None:
        try:
            if not self._explicit_config and handles.binary_path is not None:
                self._config = load_config(Path(handles.binary_path).parent)
            self._log_handler = configure_logging(self._config.logging)
        except Exception as e:
            logger.warning("Unable to apply the plugin configuration: %s", e)

    def _bootstrap(self, handles: HostHandles) -> None:
        natives = self._config.natives
        if not natives.enabled or handles.binary_path is None:
            logger.debug("Native resource bootstrap skipped")
            return

        bootstrapper = NativeResourceBootstrapper(
            handles.binary_path,
            path_resolver=handles.library_path_resolver,
            native_dir_name=natives.dir_name,
        )
        try:
            bootstrapper.ensure_native_resources()
        except BootstrapError as e:
            logger.warning(
                "An unexpected error occurred while checking the native libraries: %s", e
            )
        except Exception as e:
            logger.warning(
                "An unexpected error occurred while checking the native libraries: %s",
                e,
                exc_info=True,
            )

    def _build_context(self, server_info: ServerInfo) -> ComponentContext:
        component = self._config.component
        return ComponentContext(
            hostname=server_info.hostname,
            domain=server_info.domain,
            subdomain=component.subdomain,
            rest_api_enabled=component.rest_api_enabled,
        )

    def _activate(self, handles: HostHandles) -> None:
        subdomain = self._config.component.subdomain

        try:
            # The context must be complete before the component is constructed.
            context = self._build_context(handles.server_info)
            component = handles.component_factory(context)
        except Exception as e:
            raise RegistrationError(
                f"Failed to construct the videobridge component: {e}", subdomain
            ) from e

        registration = ComponentRegistration(
            manager=handles.component_manager,
            component=component,
            subdomain=subdomain,
        )

        try:
            handles.component_manager.add_component(subdomain, component)
        except ComponentError as e:
            raise RegistrationError(
                f"Host refused the videobridge component: {e}", subdomain
            ) from e
        except Exception as e:
            # The host may have registered the component before failing.
            self._remove_component(registration)
            raise RegistrationError(
                f"Unexpected error while adding the videobridge component: {e}", subdomain
            ) from e

        try:
            store = PortConfigurationStore(handles.configuration_backend)
            store.initialize_from_host(handles.host_properties)
            snapshot = StartupSnapshot.capture(store)
            subscription = handles.dispatcher.subscribe(
                PropertyChangeListener(store), owner=subdomain
            )
        except Exception as e:
            self._remove_component(registration)
            raise RegistrationError(
                f"Failed to apply the videobridge configuration: {e}", subdomain
            ) from e

        self._registration = registration
        self._runtime = RuntimeConfiguration(store, snapshot)
        self._dispatcher = handles.dispatcher
        self._subscription = subscription
        logger.debug("Startup snapshot: %s", snapshot.to_dict())

    @staticmethod
    def _remove_component(registration: ComponentRegistration) -> None:
        try:
            registration.manager.remove_component(registration.subdomain)
        except Exception as e:
            logger.warning(
                "An unexpected exception occurred while removing component '%s': %s",
                registration.subdomain,
                e,
                exc_info=True,
            )

    def _clear(self) -> None:
        self._registration = None
        self._runtime = None
        self._dispatcher = None
        self._subscription = None
