"""Configuration: defaults, file/env hierarchy and validated settings."""

from embedres.config.hierarchy import load_config_hierarchy
from embedres.config.schema import ServiceSettings, UrlValidation, validate_server_url

__all__ = [
    "ServiceSettings",
    "UrlValidation",
    "load_config_hierarchy",
    "validate_server_url",
]
