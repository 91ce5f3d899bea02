import importlib.metadata

try:
    _detected_version = importlib.metadata.version("fallback-router")
    __version__ = _detected_version if _detected_version else "0.0.0-dev"
except importlib.metadata.PackageNotFoundError:
    # Running from a source checkout without installed metadata
    __version__ = "0.0.0-dev"

from fallback_router.settings import (
    Settings,
    PathSettings,
    RoutingSettings,
    RetrySettings,
    HostSettings,
    get_settings,
    clear_settings_cache,
    configure_logging,
    # Enums
    RoutingMode,
    CostPreference,
)

__all__ = [
    "__version__",
    # Settings classes
    "Settings",
    "PathSettings",
    "RoutingSettings",
    "RetrySettings",
    "HostSettings",
    # Accessors
    "get_settings",
    "clear_settings_cache",
    "configure_logging",
    # Enums
    "RoutingMode",
    "CostPreference",
]
