"""
Ejecutor de sentencias administrativas sobre la conexión abierta
"""
import logging
import time
from typing import Iterable, List
from ..logger import LoggerService
from ..models import DiagnosticRecord, ExecutionResult, ExecutionStatus
from .connection_service import Connection
from .diagnostics import iter_diagnostics, iter_messages


class CommandExecutor:
    """Envía una sentencia y clasifica su resultado según los diagnósticos del driver"""

    def __init__(self):
        self.logger = LoggerService.get_logger("CommandExecutor")

    def execute(self, connection: Connection, statement: str) -> ExecutionResult:
        """
        Ejecuta una sentencia de forma síncrona

        La llamada bloquea hasta que el servidor termina o rechaza la sentencia;
        un backup completo puede tardar varios minutos.

        Args:
            connection: Conexión abierta
            statement: Sentencia SQL

        Returns:
            ExecutionResult con el estado y los diagnósticos
        """
        start_time = time.time()

        try:
            cursor = connection.cursor()
        except Exception as e:
            self.logger.error("Failed to allocate statement handle")
            diagnostics = self._report(iter_diagnostics(e), logging.ERROR)
            return self._result(ExecutionStatus.FAILURE, diagnostics, statement, start_time)

        try:
            try:
                cursor.execute(statement)
                messages = list(cursor.messages)
                # El servidor envía el progreso del backup en varios result sets
                while cursor.nextset():
                    messages.extend(cursor.messages)
            except Exception as e:
                self.logger.error(f"Failed to execute SQL: {statement}")
                diagnostics = self._report(iter_diagnostics(e), logging.ERROR)
                return self._result(ExecutionStatus.FAILURE, diagnostics, statement, start_time)

            self.logger.info("SQL executed successfully.")

            if messages:
                self.logger.warning(f"SQL executed with warnings: {statement}")
                diagnostics = self._report(iter_messages(messages), logging.WARNING)
                return self._result(ExecutionStatus.SUCCESS_WITH_WARNINGS, diagnostics, statement, start_time)

            return self._result(ExecutionStatus.SUCCESS, [], statement, start_time)
        finally:
            self._close_cursor(cursor)

    def _close_cursor(self, cursor):
        """Libera el cursor sin reemplazar el resultado ya calculado"""
        try:
            cursor.close()
        except Exception as e:
            self.logger.warning(f"Failed to free statement handle: {e}")

    def _report(self, records: Iterable[DiagnosticRecord], level: int) -> List[DiagnosticRecord]:
        """Registra cada diagnóstico hasta agotar la secuencia"""
        collected = []
        for record in records:
            self.logger.log(level, f"ODBC Diagnostic: {record}")
            collected.append(record)

        if not collected:
            self.logger.log(level, "No ODBC diagnostics available.")
        return collected

    @staticmethod
    def _result(status: ExecutionStatus, diagnostics: List[DiagnosticRecord],
                statement: str, start_time: float) -> ExecutionResult:
        return ExecutionResult(
            status=status,
            diagnostics=diagnostics,
            statement=statement,
            duration_seconds=time.time() - start_time,
        )
