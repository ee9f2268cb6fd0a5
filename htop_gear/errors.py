class HTopGearError(Exception):
    """Base class for errors raised by htop_gear."""


class ConfigError(HTopGearError):
    """Invalid configuration value."""


class SampleError(HTopGearError):
    """The process table could not be read."""
