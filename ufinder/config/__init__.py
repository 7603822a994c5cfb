"""Configuration package exports."""

from .loader import ConfigRepository, EndpointsLayout, SourcePaths, template_path
from .models import GlobalConfig, ProducerMode, SourceConfig

__all__ = [
    "ConfigRepository",
    "EndpointsLayout",
    "GlobalConfig",
    "ProducerMode",
    "SourceConfig",
    "SourcePaths",
    "template_path",
]
