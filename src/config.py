"""
Configuración centralizada del agente de backup
"""
import logging
import os
from pathlib import Path
from dotenv import load_dotenv, find_dotenv

from .exceptions import FileSystemError


class Config:
    """Configuración centralizada del sistema"""

    ENV_FILE = find_dotenv()

    # Cargar variables de entorno desde la raíz real del proyecto
    load_dotenv(ENV_FILE)

    # BASE_DIR debe ser la raíz donde está main.py
    BASE_DIR = Path(ENV_FILE).parent if ENV_FILE else Path(__file__).resolve().parents[1]

    CONFIG_FILE = Path(os.getenv("BACKUP_CONFIG_FILE")) if os.getenv("BACKUP_CONFIG_FILE") else (BASE_DIR / "config.ini")
    LOG_DIR = Path(os.getenv("BACKUP_LOG_DIR")) if os.getenv("BACKUP_LOG_DIR") else (BASE_DIR / "Logs")

    LOG_LEVEL = logging.INFO
    LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    LOG_FILE_PREFIX = "backup_agent"

    SECTION = "BackupSettings"

    # Valores por defecto de cada clave de la sección BackupSettings
    DEFAULTS = {
        "BackupDirectory": "C:\\SQLBackups\\",
        "IntervalMinutes": "15",
        "AccountServer": "AccountServer",
        "GameDB": "GameDB",
        "SQLServerInstance": "localhost\\SQLEXPRESS",
        "SQLUser": "sa",
        "SQLPassword": "",
    }

    ODBC_DRIVER = os.getenv("ODBC_DRIVER", "ODBC Driver 17 for SQL Server")
    LOGIN_TIMEOUT = 30  # Segundos para establecer la conexión

    TIMESTAMP_FORMAT = "%Y%m%d_%H%M"  # Resolución de minuto
    BACKUP_SUFFIX = ".bak"

    @classmethod
    def ensure_log_directory(cls):
        """Crea el directorio de logs si no existe"""
        cls.LOG_DIR.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def ensure_backup_directory(backup_dir: str) -> Path:
        """
        Valida el directorio de backups, creándolo si no existe

        Args:
            backup_dir: Ruta del directorio de backups

        Returns:
            Ruta validada

        Raises:
            FileSystemError: Si la ruta no es un directorio o no se puede crear
        """
        path = Path(backup_dir)
        if path.exists() and not path.is_dir():
            raise FileSystemError(f"Path exists but is not a directory: {backup_dir}")

        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileSystemError(f"Failed to create directory: {backup_dir} ({e})") from e

        return path
