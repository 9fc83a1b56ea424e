"""
Servicio principal que orquesta los backups de un ciclo
"""
from datetime import datetime
from typing import List, Optional
from ..config import Config
from ..exceptions import CommandError
from ..logger import LoggerService
from ..models import BackupConfig, BackupCommand, BackupResult, ExecutionStatus
from .command_executor import CommandExecutor
from .connection_service import Connection


def generate_timestamp(now: Optional[datetime] = None) -> str:
    """
    Genera la marca de tiempo de los archivos de backup (hora local, minuto)

    Args:
        now: Instante a formatear (por defecto, el actual)

    Returns:
        Texto con formato YYYYMMDD_HHMM
    """
    return (now or datetime.now()).strftime(Config.TIMESTAMP_FORMAT)


class BackupService:
    """Servicio principal que orquesta los backups"""

    def __init__(self, config: BackupConfig, executor: Optional[CommandExecutor] = None):
        """
        Inicializa el servicio de backup

        Args:
            config: Configuración del agente
            executor: Ejecutor de sentencias (opcional)
        """
        self.config = config
        self.executor = executor or CommandExecutor()
        self.logger = LoggerService.get_logger("BackupService")

    def build_commands(self, timestamp: str) -> List[BackupCommand]:
        """Construye los comandos del ciclo, uno por base de datos objetivo"""
        return [
            BackupCommand.create(self.config.backup_directory, name, timestamp)
            for name in self.config.target_databases
        ]

    def backup_all_databases(self, connection: Connection, timestamp: Optional[str] = None) -> List[BackupResult]:
        """
        Realiza backup de las dos bases de datos configuradas

        Un fallo en una base de datos no impide el intento de la siguiente.

        Args:
            connection: Conexión abierta
            timestamp: Marca de tiempo del ciclo (por defecto, la actual)

        Returns:
            Lista de resultados de backup, en orden de ejecución
        """
        commands = self.build_commands(timestamp or generate_timestamp())

        self.logger.info("=" * 70)
        self.logger.info("INICIANDO PROCESO DE BACKUP")
        self.logger.info("=" * 70)
        for command in commands:
            self.logger.info(f"Executing SQL: {command.statement}")

        results = [self._backup_single_database(connection, command) for command in commands]

        self._print_summary(results)
        return results

    def backup_specific_database(self, connection: Connection, database_name: str) -> BackupResult:
        """
        Realiza backup de una base de datos específica

        Args:
            connection: Conexión abierta
            database_name: Nombre de la base de datos

        Returns:
            Resultado del backup

        Raises:
            CommandError: Si la base de datos no está configurada
        """
        if database_name not in self.config.target_databases:
            raise CommandError(f"Base de datos no encontrada en configuración: {database_name}")

        command = BackupCommand.create(self.config.backup_directory, database_name, generate_timestamp())
        return self._backup_single_database(connection, command)

    def _backup_single_database(self, connection: Connection, command: BackupCommand) -> BackupResult:
        """
        Ejecuta el backup de una base de datos

        Args:
            connection: Conexión abierta
            command: Comando de backup

        Returns:
            Resultado del backup
        """
        self.logger.info("-" * 70)
        self.logger.info(f"Starting backup for {command.database_name}...")

        try:
            execution = self.executor.execute(connection, command.statement)
        except Exception as e:
            # Cada base de datos queda aislada de los fallos de la otra
            self.logger.error(f"Backup failed for {command.database_name}: {e}", exc_info=True)
            return BackupResult(
                database_name=command.database_name,
                success=False,
                output_file=command.destination,
                error=str(e) or e.__class__.__name__,
                status=ExecutionStatus.FAILURE,
            )

        if execution.succeeded:
            self.logger.info(f"Backup succeeded for {command.database_name}")
            return BackupResult(
                database_name=command.database_name,
                success=True,
                output_file=command.destination,
                duration_seconds=execution.duration_seconds,
                status=execution.status,
            )

        self.logger.error(f"Backup failed for {command.database_name}")
        if any(record.is_connection_error for record in execution.diagnostics):
            self.logger.error(
                "La conexión con el servidor parece perdida; "
                "el agente no reconecta automáticamente, reinícialo"
            )

        error = "; ".join(record.message for record in execution.diagnostics) or "No ODBC diagnostics available"
        return BackupResult(
            database_name=command.database_name,
            success=False,
            output_file=command.destination,
            error=error,
            duration_seconds=execution.duration_seconds,
            status=execution.status,
        )

    def _print_summary(self, results: List[BackupResult]):
        """
        Imprime resumen de la operación de backup

        Args:
            results: Lista de resultados
        """
        success_count = sum(1 for r in results if r.success)
        failed_count = len(results) - success_count
        total_time = sum(r.duration_seconds for r in results)

        self.logger.info("=" * 70)
        self.logger.info("RESUMEN DEL PROCESO DE BACKUP")
        self.logger.info("=" * 70)

        for result in results:
            if result.success and result.status is ExecutionStatus.SUCCESS_WITH_WARNINGS:
                status = "✓ EXITOSO (con avisos)"
            elif result.success:
                status = "✓ EXITOSO"
            else:
                status = "✗ FALLIDO"
            self.logger.info(f"{status}: {result.database_name} ({result.duration_seconds:.2f}s)")
            if result.success:
                self.logger.info(f"  Archivo: {result.output_file}")
            else:
                self.logger.error(f"  Error: {result.error}")

        self.logger.info("-" * 70)
        self.logger.info(f"Backups exitosos: {success_count}")
        self.logger.info(f"Backups fallidos: {failed_count}")
        self.logger.info(f"Tiempo total: {total_time:.2f}s")
        self.logger.info("=" * 70)

        if failed_count > 0:
            self.logger.warning(
                f"ATENCIÓN: {failed_count} backup(s) fallaron. "
                "Revisa los errores arriba."
            )
