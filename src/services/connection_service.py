"""
Servicio de conexión con SQL Server vía ODBC
"""
from ..config import Config
from ..exceptions import DatabaseConnectionError
from ..logger import LoggerService
from ..models import BackupConfig
from .diagnostics import iter_diagnostics

try:
    import pyodbc
except ImportError:  # pragma: no cover
    pyodbc = None


class Connection:
    """Conexión única con el servidor, mantenida durante toda la vida del proceso"""

    def __init__(self, handle, server_instance: str = ""):
        self._handle = handle
        self.server_instance = server_instance

    @property
    def closed(self) -> bool:
        return self._handle is None

    def cursor(self):
        """Reserva un cursor sobre la conexión"""
        if self._handle is None:
            raise DatabaseConnectionError("Connection is closed")
        return self._handle.cursor()

    def close(self):
        """Cierra la conexión; llamadas posteriores no hacen nada"""
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        handle.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class ConnectionService:
    """Establece la conexión con el servidor a partir de la configuración"""

    def __init__(self):
        self.logger = LoggerService.get_logger("ConnectionService")

    @staticmethod
    def build_connection_string(config: BackupConfig, driver: str = None) -> str:
        """
        Construye la cadena de conexión ODBC

        TrustServerCertificate=yes acepta el certificado del servidor sin
        validarlo. Es una concesión operativa para instancias locales con
        certificados autofirmados y debe revisarse en despliegues expuestos.

        Args:
            config: Configuración del agente
            driver: Nombre del driver ODBC (por defecto Config.ODBC_DRIVER)

        Returns:
            Cadena de conexión
        """
        return (
            f"Driver={{{driver or Config.ODBC_DRIVER}}};"
            f"Server={config.server_instance};"
            f"UID={config.user};"
            f"PWD={config.password};"
            f"ApplicationIntent=ReadWrite;"
            f"TrustServerCertificate=yes;"
        )

    def connect(self, config: BackupConfig) -> Connection:
        """
        Conecta con el servidor; cualquier fallo es fatal

        Args:
            config: Configuración del agente

        Returns:
            Connection abierta

        Raises:
            DatabaseConnectionError: Si el driver no está disponible o la conexión falla
        """
        if pyodbc is None:
            raise DatabaseConnectionError("pyodbc is not available (is unixODBC installed?)")

        conn_str = self.build_connection_string(config)
        self.logger.info(f"[SQLSERVER] Connecting to {config.server_instance} as {config.user}")
        self.logger.debug(f"[SQLSERVER] {conn_str}")

        try:
            # BACKUP DATABASE no se permite dentro de una transacción de usuario
            handle = pyodbc.connect(conn_str, autocommit=True, timeout=Config.LOGIN_TIMEOUT)
        except pyodbc.Error as e:
            diagnostics = list(iter_diagnostics(e))
            detail = diagnostics[0] if diagnostics else "Unknown error"
            raise DatabaseConnectionError(
                f"Failed to connect to SQL Server: {detail}", diagnostics
            ) from e

        self.logger.info("Connected to SQL Server successfully.")
        return Connection(handle, config.server_instance)
