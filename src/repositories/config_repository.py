"""
Repositorio para manejar configuración (Dependency Inversion)
"""
import os
from pathlib import Path
from typing import Optional
from ..config import Config
from ..exceptions import ConfigError
from ..logger import LoggerService
from ..models import BackupConfig

ANSI_ENCODING = "cp1252"


def resolve(section: str, key: str, source: Path, default: str) -> str:
    """
    Busca el valor de una clave dentro de una sección de un archivo INI

    El valor se devuelve tal cual aparece tras el primer '=', sin recortar
    espacios ni convertir tipos. El archivo se relee en cada llamada.

    Args:
        section: Nombre de la sección (sin corchetes)
        key: Clave a buscar
        source: Ruta del archivo de configuración
        default: Valor devuelto si el archivo no se puede leer o no hay coincidencia

    Returns:
        Valor encontrado o el valor por defecto
    """
    try:
        with open(source, "rb") as f:
            raw = f.read()
    except OSError as e:
        LoggerService.get_logger("ConfigRepository").warning(
            f"Failed to open config file: {source} ({e})"
        )
        return default

    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        # Archivos guardados como ANSI desde el Bloc de notas
        text = raw.decode(ANSI_ENCODING, errors="replace")

    lines = text.splitlines()
    in_section = False
    for line in lines:
        if not line or line[0] in (";", "#"):
            continue

        if line.startswith("[") and line.endswith("]"):
            in_section = line[1:-1] == section
            continue

        if in_section:
            current_key, sep, value = line.partition("=")
            if sep and current_key == key:
                return value

    return default


class ConfigRepository:
    """Repositorio para manejar configuración"""

    def __init__(self, config_file: Optional[Path] = None):
        """
        Inicializa el repositorio de configuración

        Args:
            config_file: Ruta al archivo de configuración (opcional)
        """
        self.config_file = Path(config_file) if config_file else Config.CONFIG_FILE
        self.logger = LoggerService.get_logger("ConfigRepository")

    def get_value(self, key: str) -> str:
        """Obtiene una clave de la sección BackupSettings con su valor por defecto"""
        return resolve(Config.SECTION, key, self.config_file, Config.DEFAULTS[key])

    def get_backup_config(self) -> BackupConfig:
        """
        Resuelve la configuración completa del agente

        Returns:
            Objeto BackupConfig

        Raises:
            ConfigError: Si IntervalMinutes no es un entero mayor a 0
        """
        if not self.config_file.exists():
            self.logger.warning(
                f"El archivo de configuración no existe: {self.config_file}. Se usan valores por defecto"
            )

        raw_interval = self.get_value("IntervalMinutes")
        try:
            interval = int(raw_interval)
        except ValueError:
            raise ConfigError(f"IntervalMinutes no es un número entero: {raw_interval!r}") from None

        return BackupConfig(
            backup_directory=self.get_value("BackupDirectory"),
            interval_minutes=interval,
            account_database=self.get_value("AccountServer"),
            game_database=self.get_value("GameDB"),
            server_instance=self.get_value("SQLServerInstance"),
            user=self._resolve_credential(self.get_value("SQLUser")),
            password=self._resolve_credential(self.get_value("SQLPassword")),
        )

    def _resolve_credential(self, value: str) -> str:
        """
        Resuelve credencial desde variable de entorno si es necesario

        Args:
            value: Valor que puede contener referencia a variable de entorno

        Returns:
            Valor resuelto
        """
        if value.startswith("${") and value.endswith("}"):
            env_var = value[2:-1]
            resolved = os.getenv(env_var, "")
            if not resolved:
                self.logger.warning(f"Variable de entorno no encontrada: {env_var}")
            return resolved
        return value

    def create_example_config(self) -> bool:
        """
        Crea un archivo config.ini de ejemplo con los valores por defecto

        Returns:
            True si se creó exitosamente
        """
        lines = ["; Configuración del agente de backup de SQL Server", f"[{Config.SECTION}]"]
        for key, value in Config.DEFAULTS.items():
            if key in ("SQLUser", "SQLPassword"):
                value = "${MSSQL_USER}" if key == "SQLUser" else "${MSSQL_PASSWORD}"
            lines.append(f"{key}={value}")

        try:
            self.config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w", encoding="utf-8") as f:
                f.write("\n".join(lines) + "\n")
            self.logger.info(f"Configuración guardada exitosamente: {self.config_file}")
            return True
        except OSError as e:
            self.logger.error(f"Error al guardar la configuración: {e}")
            return False
