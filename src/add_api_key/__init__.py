"""Expose the API key lifecycle plugin and its reconciliation entry points.

'why': provide a small, explicit surface for deployment hooks and ad-hoc runs
"""
from ._config import ServiceDefinition, build_settings, load_service_definition, parse_key_specs
from ._errors import (
    AddApiKeyError,
    ConfigurationError,
    DecryptionError,
    PaginationLimitError,
    StackOutputError,
)
from ._gateway import Collaborators
from ._models import AddReport, DesiredKeySpec, RemoveReport
from ._plugin import AddApiKeyPlugin, StaticProvider
from ._reconcile import RunContext, add_api_keys, remove_api_keys

__all__ = [
    "AddApiKeyError",
    "AddApiKeyPlugin",
    "AddReport",
    "Collaborators",
    "ConfigurationError",
    "DecryptionError",
    "DesiredKeySpec",
    "PaginationLimitError",
    "RemoveReport",
    "RunContext",
    "ServiceDefinition",
    "StackOutputError",
    "StaticProvider",
    "add_api_keys",
    "build_settings",
    "load_service_definition",
    "parse_key_specs",
    "remove_api_keys",
]

__version__ = "0.1.0"
