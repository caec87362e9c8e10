class CompanionError(RuntimeError):
    """Base class for unrecoverable companion errors."""


class ConfigError(CompanionError):
    pass


class DeviceError(CompanionError):
    """Serial device failure. Always fatal, there is no reconnect."""


class DeviceNotFoundError(DeviceError):
    pass


class DeviceOpenError(DeviceError):
    pass


class DeviceDisconnectedError(DeviceError):
    pass


class DeviceWriteError(DeviceError):
    pass


class FrameError(ValueError):
    """Raised when bytes handed to the decoder are not a bounded frame."""
