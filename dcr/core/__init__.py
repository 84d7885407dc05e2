"""Core types: results, exit codes and configuration."""

from .config import (
    Catalog,
    Config,
    ConfigError,
    DefinitionConfig,
    DefinitionDependencies,
    Distro,
    PackageSet,
    Settings,
    load_config,
)
from .errors import ErrorCode
from .result import Err, Ok, Result, is_err, is_ok

__all__ = [
    # config
    "Catalog",
    "Config",
    "ConfigError",
    "DefinitionConfig",
    "DefinitionDependencies",
    "Distro",
    "PackageSet",
    "Settings",
    "load_config",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
]
