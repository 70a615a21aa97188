"""
Server lifecycle errors.

Every failure during startup (configuration, binding) or in the serve loop
is raised as a ServerError subclass with a descriptive message. Per-request
failures never use these; they become envelope responses instead.
"""


class ServerError(Exception):
    """Base class for fatal server lifecycle failures."""


class ConfigurationError(ServerError):
    """A configuration value is present but unusable."""


class MissingConfiguration(ConfigurationError):
    """A required environment variable is not defined."""

    def __init__(self, variable: str):
        self.variable = variable
        super().__init__(
            f'Environment variable "{variable}" is not defined. '
            f"Set it in the environment or in your .env file."
        )


class BindError(ServerError):
    """The listening socket could not be acquired."""

    def __init__(self, address: str, reason: str):
        self.address = address
        super().__init__(f"Failed to create listener on {address}: {reason}")


class ServeError(ServerError):
    """The serve loop failed or never started."""


class ServerAlreadyConsumed(ServerError):
    """A server instance was run or closed more than once."""
