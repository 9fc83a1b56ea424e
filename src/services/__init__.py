"""
Servicios de la aplicación
"""
from .backup_service import BackupService
from .command_executor import CommandExecutor
from .connection_service import Connection, ConnectionService
from .scheduler_service import SchedulerService

__all__ = [
    'BackupService',
    'CommandExecutor',
    'Connection',
    'ConnectionService',
    'SchedulerService'
]
