"""
In-process Team Registry

This package provides:
1. InMemoryRegistry — lock-guarded registry of team health records
2. RegistryClient — HTTP client for a running registry server
3. start_registry_server — launches the HTTP API in a daemon thread
"""

from .health_registry import (
    HealthRecord,
    HealthState,
    InMemoryRegistry,
)
from .http_api import create_registry_server, start_registry_server
from .client import RegistryClient, RegistryClientError

__all__ = [
    'HealthRecord',
    'HealthState',
    'InMemoryRegistry',
    'RegistryClient',
    'RegistryClientError',
    'create_registry_server',
    'start_registry_server',
]
