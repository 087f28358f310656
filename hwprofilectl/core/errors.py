"""Domain-specific errors for hwprofilectl."""


class HwProfileError(Exception):
    """Base error for hwprofilectl."""


class ConfigError(HwProfileError):
    """Raised when the configuration file cannot be read or is invalid."""


class FetchUnavailableError(HwProfileError):
    """Raised when the catalog cannot be downloaded and no cache exists."""


class CatalogCorruptError(HwProfileError):
    """Raised when a catalog breaks a structural invariant and cannot be parsed."""


class DeviceNotFoundError(HwProfileError):
    """Raised when no enumerated device matches the requested identifier."""


class ProfileNotFoundError(HwProfileError):
    """Raised when no catalog profile carries the requested codename."""


class NoProfilesAvailableError(HwProfileError):
    """Raised when a device was matched against the catalog but nothing applies."""


class ExecutionFailureError(HwProfileError):
    """Raised when a check/install/remove script fails to spawn or exits non-zero."""


class DeviceDiscoveryError(HwProfileError):
    """Raised when device enumeration backend(s) fail."""


class DeviceActionError(HwProfileError):
    """Raised when a pass-through device action fails."""
