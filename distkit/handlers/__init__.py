# distkit/handlers/__init__.py

from .base import (
    ComponentInstallHandler,
    InstallationContext,
    InstallHandler
)
from .fresh import FreshInstallHandler
from .update import UpdateInstallHandler
from .repair import RepairInstallHandler

__all__ = [
    'ComponentInstallHandler',
    'InstallationContext',
    'InstallHandler',
    'FreshInstallHandler',
    'UpdateInstallHandler',
    'RepairInstallHandler'
]
