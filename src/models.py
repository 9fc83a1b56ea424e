"""
Modelos de datos del sistema
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from .config import Config
from .exceptions import ConfigError


@dataclass(frozen=True)
class BackupConfig:
    """Configuración del agente, resuelta una sola vez al iniciar"""
    backup_directory: str
    interval_minutes: int
    account_database: str
    game_database: str
    server_instance: str
    user: str
    password: str = field(default="", repr=False)

    def __post_init__(self):
        """Validación después de inicialización"""
        if self.interval_minutes < 1:
            raise ConfigError("IntervalMinutes debe ser mayor a 0")
        if not self.account_database or not self.game_database:
            raise ConfigError("Los nombres de las bases de datos son obligatorios")
        if not self.backup_directory:
            raise ConfigError("BackupDirectory es obligatorio")

    @property
    def target_databases(self) -> Tuple[str, str]:
        """Bases de datos a respaldar, en orden de ejecución"""
        return (self.account_database, self.game_database)


@dataclass(frozen=True)
class BackupCommand:
    """Comando de backup de una base de datos para un ciclo concreto"""
    database_name: str
    destination: str

    @classmethod
    def create(cls, directory: str, database_name: str, timestamp: str) -> "BackupCommand":
        """
        Construye el comando con su archivo destino

        Args:
            directory: Directorio de backups (con o sin separador final)
            database_name: Nombre de la base de datos
            timestamp: Marca de tiempo del ciclo

        Returns:
            BackupCommand listo para ejecutar
        """
        # El servidor puede ser Windows aunque el agente no lo sea: no usar pathlib
        if not directory.endswith(("\\", "/")):
            directory += "\\" if "\\" in directory else "/"

        destination = f"{directory}{database_name}_backup_{timestamp}{Config.BACKUP_SUFFIX}"
        return cls(database_name=database_name, destination=destination)

    @property
    def label(self) -> str:
        return f"Full Backup of {self.database_name}"

    @property
    def statement(self) -> str:
        """Sentencia BACKUP DATABASE con identificadores y literales escapados"""
        name = self.database_name.replace("]", "]]")
        path = self.destination.replace("'", "''")
        label = self.label.replace("'", "''")
        return f"BACKUP DATABASE [{name}] TO DISK = '{path}' WITH FORMAT, NAME = '{label}'"


@dataclass(frozen=True)
class DiagnosticRecord:
    """Registro de diagnóstico devuelto por el driver"""
    sql_state: str
    native_error: int
    message: str

    def __str__(self):
        return f"SQLState={self.sql_state}, NativeError={self.native_error}, Message={self.message}"

    @property
    def is_connection_error(self) -> bool:
        """SQLSTATE de clase 08: la conexión se perdió o no existe"""
        return self.sql_state.startswith("08")


class ExecutionStatus(Enum):
    SUCCESS = "success"
    SUCCESS_WITH_WARNINGS = "success_with_warnings"
    FAILURE = "failure"


@dataclass
class ExecutionResult:
    """Resultado de ejecutar una sentencia"""
    status: ExecutionStatus
    diagnostics: List[DiagnosticRecord] = field(default_factory=list)
    statement: str = ""
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status is not ExecutionStatus.FAILURE


@dataclass
class BackupResult:
    """Resultado de una operación de backup"""
    database_name: str
    success: bool
    output_file: Optional[str] = None
    error: Optional[str] = None
    duration_seconds: float = 0.0
    status: Optional[ExecutionStatus] = None

    def __str__(self):
        if self.success:
            return f"✓ {self.database_name}: {self.output_file} ({self.duration_seconds:.2f}s)"
        else:
            return f"✗ {self.database_name}: {self.error}"
