"""Define the exception hierarchy.

'why': give callers one base class to catch while keeping failure modes distinct
"""
from __future__ import annotations


class AddApiKeyError(RuntimeError):
    """Base class for failures raised by this package."""


class ConfigurationError(AddApiKeyError):
    """Raised when settings or the service definition are invalid."""


class DecryptionError(AddApiKeyError):
    """Raised when an encrypted key value cannot be turned into plaintext."""


class StackOutputError(AddApiKeyError):
    """Raised when the deployed stack does not expose a usable REST API endpoint."""


class PaginationLimitError(AddApiKeyError):
    """Raised when a listing keeps returning continuation tokens past the page guard."""
