"""Core modules for the videobridge plugin's configuration lifecycle."""

from .events import PropertyEventDispatcher, PropertyEventKind, PropertySubscription
from .exceptions import (
    BootstrapError,
    ComponentError,
    InvalidFormatError,
    OutOfRangeError,
    PluginError,
    PluginNotRunningError,
    RegistrationError,
    ValidationError,
)
from .host import HostPropertyMap, ServerInfo
from .lifecycle import (
    ComponentContext,
    HostHandles,
    LifecycleState,
    VideobridgePlugin,
)
from .listener import PropertyChangeListener
from .natives import BootstrapOutcome, LibraryPathResolver, NativeResourceBootstrapper
from .runtime_configuration import RuntimeConfiguration, StartupSnapshot
from .store import (
    InMemoryConfigurationBackend,
    PortConfigurationStore,
    YamlConfigurationBackend,
)

__all__ = [
    "BootstrapError",
    "BootstrapOutcome",
    "ComponentContext",
    "ComponentError",
    "HostHandles",
    "HostPropertyMap",
    "InMemoryConfigurationBackend",
    "InvalidFormatError",
    "LibraryPathResolver",
    "LifecycleState",
    "NativeResourceBootstrapper",
    "OutOfRangeError",
    "PluginError",
    "PluginNotRunningError",
    "PortConfigurationStore",
    "PropertyChangeListener",
    "PropertyEventDispatcher",
    "PropertyEventKind",
    "PropertySubscription",
    "RegistrationError",
    "RuntimeConfiguration",
    "ServerInfo",
    "StartupSnapshot",
    "ValidationError",
    "VideobridgePlugin",
    "YamlConfigurationBackend",
]
