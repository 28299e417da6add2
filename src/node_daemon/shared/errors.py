class LauncherError(Exception):
    pass


class ConfigError(LauncherError):
    pass


class AddressParseError(LauncherError):
    pass


class RemoteRejection(LauncherError):
    pass


class TransportFailure(LauncherError):
    pass


class ServiceError(LauncherError):
    pass


class InstallFailure(ServiceError):
    pass


class StartFailure(ServiceError):
    pass


class ForkFailure(LauncherError):
    pass
