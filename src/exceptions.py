"""
Jerarquía de errores del agente de backup
"""


class BackupAgentError(Exception):
    """Error base del agente"""


class ConfigError(BackupAgentError):
    """Valor de configuración mal formado"""


class FileSystemError(BackupAgentError):
    """El directorio de backups no se puede validar ni crear"""


class DatabaseConnectionError(BackupAgentError):
    """Fallo al conectar con el servidor de base de datos"""

    def __init__(self, message: str, diagnostics=None):
        super().__init__(message)
        self.diagnostics = list(diagnostics or [])


class CommandError(BackupAgentError):
    """Un comando de backup no se pudo preparar o ejecutar"""
