"""
Tests de los servicios: conexión, ejecución, ciclo de backup y scheduler
"""
import signal
import threading
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch
import tempfile
import shutil
import sys

# Agregar raíz del proyecto al path
sys.path.insert(0, str(Path(__file__).parent.parent))

import main
from src.exceptions import CommandError, DatabaseConnectionError
from src.models import BackupConfig, ExecutionResult, ExecutionStatus, DiagnosticRecord
from src.repositories.config_repository import ConfigRepository
from src.services.backup_service import BackupService
from src.services.command_executor import CommandExecutor
from src.services.connection_service import Connection, ConnectionService
from src.services.scheduler_service import SchedulerService


class FakeOdbcError(Exception):
    """Imita pyodbc.Error: args = (sqlstate, mensaje)"""


class FakeCursor:
    """Cursor mínimo con la interfaz de pyodbc usada por el ejecutor"""

    def __init__(self, error=None, messages=None, next_sets=None, close_error=None):
        self.error = error
        self.close_error = close_error
        self.messages = list(messages or [])
        self.next_sets = list(next_sets or [])
        self.executed = []
        self.closed = False

    def execute(self, statement):
        self.executed.append(statement)
        if self.error:
            raise self.error
        return self

    def nextset(self):
        if self.next_sets:
            self.messages = self.next_sets.pop(0)
            return True
        return False

    def close(self):
        if self.close_error:
            raise self.close_error
        self.closed = True


class FakeHandle:
    """Conexión pyodbc falsa que entrega cursores preparados"""

    def __init__(self, *cursors, cursor_error=None):
        self.cursors = list(cursors)
        self.cursor_error = cursor_error
        self.closed = False

    def cursor(self):
        if self.cursor_error:
            raise self.cursor_error
        return self.cursors.pop(0)

    def close(self):
        self.closed = True


def make_config(**overrides) -> BackupConfig:
    values = dict(
        backup_directory="/tmp/backups",
        interval_minutes=1,
        account_database="Acct",
        game_database="Game",
        server_instance="localhost\\SQLEXPRESS",
        user="sa",
        password="secret",
    )
    values.update(overrides)
    return BackupConfig(**values)


class TestConnectionService(unittest.TestCase):
    """Tests para ConnectionService"""

    def setUp(self):
        self.service = ConnectionService()
        self.config = make_config()

    def test_connection_string(self):
        conn_str = ConnectionService.build_connection_string(self.config, driver="ODBC Driver 18 for SQL Server")
        self.assertEqual(
            conn_str,
            "Driver={ODBC Driver 18 for SQL Server};Server=localhost\\SQLEXPRESS;UID=sa;PWD=secret;"
            "ApplicationIntent=ReadWrite;TrustServerCertificate=yes;"
        )

    @patch("src.services.connection_service.pyodbc")
    def test_connect_success(self, mock_pyodbc):
        handle = FakeHandle()
        mock_pyodbc.Error = FakeOdbcError
        mock_pyodbc.connect.return_value = handle

        connection = self.service.connect(self.config)

        self.assertFalse(connection.closed)
        _, kwargs = mock_pyodbc.connect.call_args
        self.assertTrue(kwargs["autocommit"])

        connection.close()
        connection.close()
        self.assertTrue(handle.closed)
        self.assertTrue(connection.closed)

    @patch("src.services.connection_service.pyodbc")
    def test_connect_failure_is_fatal(self, mock_pyodbc):
        mock_pyodbc.Error = FakeOdbcError
        mock_pyodbc.connect.side_effect = FakeOdbcError(
            "08001", "[Microsoft][ODBC Driver 17 for SQL Server]TCP Provider: timeout (258) (SQLDriverConnect)"
        )

        with self.assertRaises(DatabaseConnectionError) as ctx:
            self.service.connect(self.config)

        self.assertEqual(ctx.exception.diagnostics[0].sql_state, "08001")
        self.assertIn("Failed to connect to SQL Server", str(ctx.exception))

    @patch("src.services.connection_service.pyodbc", None)
    def test_connect_without_driver(self):
        with self.assertRaises(DatabaseConnectionError):
            self.service.connect(self.config)

    def test_closed_connection_rejects_cursor(self):
        connection = Connection(FakeHandle())
        connection.close()
        with self.assertRaises(DatabaseConnectionError):
            connection.cursor()


class TestCommandExecutor(unittest.TestCase):
    """Tests para CommandExecutor"""

    def setUp(self):
        self.executor = CommandExecutor()

    def test_success(self):
        cursor = FakeCursor()
        result = self.executor.execute(Connection(FakeHandle(cursor)), "BACKUP DATABASE [Acct]")

        self.assertEqual(result.status, ExecutionStatus.SUCCESS)
        self.assertEqual(result.diagnostics, [])
        self.assertTrue(result.succeeded)
        self.assertEqual(cursor.executed, ["BACKUP DATABASE [Acct]"])
        self.assertTrue(cursor.closed)

    def test_success_with_warnings(self):
        cursor = FakeCursor(
            messages=[("[01000] (3211)", "10 percent processed.")],
            next_sets=[[("[01000] (3014)", "BACKUP DATABASE successfully processed 450 pages.")]],
        )
        result = self.executor.execute(Connection(FakeHandle(cursor)), "BACKUP DATABASE [Acct]")

        self.assertEqual(result.status, ExecutionStatus.SUCCESS_WITH_WARNINGS)
        self.assertTrue(result.succeeded)
        self.assertEqual([d.native_error for d in result.diagnostics], [3211, 3014])
        self.assertTrue(cursor.closed)

    def test_execution_failure(self):
        cursor = FakeCursor(error=FakeOdbcError(
            "42000", "Cannot open backup device. (3201) (SQLExecDirectW); [42000] terminating abnormally. (3013)"
        ))
        result = self.executor.execute(Connection(FakeHandle(cursor)), "BACKUP DATABASE [Acct]")

        self.assertEqual(result.status, ExecutionStatus.FAILURE)
        self.assertFalse(result.succeeded)
        self.assertEqual(len(result.diagnostics), 2)
        self.assertTrue(cursor.closed)

    def test_failure_without_diagnostics(self):
        cursor = FakeCursor(error=FakeOdbcError())
        with self.assertLogs("CommandExecutor", level="ERROR") as logs:
            result = self.executor.execute(Connection(FakeHandle(cursor)), "BACKUP DATABASE [Acct]")

        self.assertEqual(result.status, ExecutionStatus.FAILURE)
        self.assertEqual(result.diagnostics, [])
        self.assertTrue(any("No ODBC diagnostics available." in line for line in logs.output))
        self.assertTrue(cursor.closed)

    def test_allocation_failure(self):
        handle = FakeHandle(cursor_error=FakeOdbcError("08003", "Connection not open (0)"))
        result = self.executor.execute(Connection(handle), "BACKUP DATABASE [Acct]")

        self.assertEqual(result.status, ExecutionStatus.FAILURE)
        self.assertEqual(result.diagnostics[0].sql_state, "08003")

    def test_close_error_keeps_result(self):
        cursor = FakeCursor(
            error=FakeOdbcError("42000", "BACKUP DATABASE is terminating abnormally. (3013)"),
            close_error=FakeOdbcError("08003", "Attempt to use a closed connection."),
        )
        with self.assertLogs("CommandExecutor", level="WARNING") as logs:
            result = self.executor.execute(Connection(FakeHandle(cursor)), "BACKUP DATABASE [Acct]")

        self.assertEqual(result.status, ExecutionStatus.FAILURE)
        self.assertEqual(result.diagnostics[0].native_error, 3013)
        self.assertTrue(any("Failed to free statement handle" in line for line in logs.output))

    def test_closed_connection(self):
        connection = Connection(FakeHandle())
        connection.close()
        result = self.executor.execute(connection, "BACKUP DATABASE [Acct]")
        self.assertEqual(result.status, ExecutionStatus.FAILURE)
        self.assertEqual(len(result.diagnostics), 1)


class RecordingExecutor:
    """Ejecutor falso que registra el orden de las llamadas"""

    def __init__(self, events, failing=(), on_execute=None):
        self.events = events
        self.failing = set(failing)
        self.on_execute = on_execute
        self.statements = []

    def execute(self, connection, statement):
        self.statements.append(statement)
        self.events.append(("start", statement))
        if self.on_execute:
            self.on_execute(statement)
        if any(f"[{name}]" in statement for name in self.failing):
            result = ExecutionResult(
                ExecutionStatus.FAILURE,
                [DiagnosticRecord("42000", 3013, "BACKUP DATABASE is terminating abnormally.")],
                statement,
            )
        else:
            result = ExecutionResult(ExecutionStatus.SUCCESS, [], statement)
        self.events.append(("end", statement))
        return result


class TestBackupService(unittest.TestCase):
    """Tests para BackupService"""

    def setUp(self):
        self.events = []
        self.connection = Connection(FakeHandle())

    def test_cycle_builds_both_commands_in_order(self):
        executor = RecordingExecutor(self.events)
        service = BackupService(make_config(), executor)

        results = service.backup_all_databases(self.connection, timestamp="20240501_1015")

        self.assertEqual([r.database_name for r in results], ["Acct", "Game"])
        self.assertEqual(
            [r.output_file for r in results],
            ["/tmp/backups/Acct_backup_20240501_1015.bak", "/tmp/backups/Game_backup_20240501_1015.bak"],
        )
        self.assertTrue(executor.statements[0].startswith("BACKUP DATABASE [Acct] TO DISK = "))
        self.assertTrue(executor.statements[1].startswith("BACKUP DATABASE [Game] TO DISK = "))

    def test_failure_does_not_abort_other_database(self):
        executor = RecordingExecutor(self.events, failing=["Acct"])
        service = BackupService(make_config(), executor)

        results = service.backup_all_databases(self.connection)

        self.assertEqual(len(executor.statements), 2)
        self.assertFalse(results[0].success)
        self.assertIn("terminating abnormally", results[0].error)
        self.assertTrue(results[1].success)

    def test_cursor_close_error_does_not_abort_tick(self):
        acct_cursor = FakeCursor(close_error=RuntimeError("Attempt to use a closed connection"))
        game_cursor = FakeCursor()
        handle = FakeHandle(acct_cursor, game_cursor)
        service = BackupService(make_config(), CommandExecutor())

        results = service.backup_all_databases(Connection(handle))

        self.assertEqual(handle.cursors, [])
        self.assertEqual(len(game_cursor.executed), 1)
        self.assertEqual([r.success for r in results], [True, True])

    def test_executor_error_does_not_abort_other_database(self):
        executor = RecordingExecutor(self.events)

        def execute(connection, statement):
            if "[Acct]" in statement:
                raise RuntimeError("boom")
            return RecordingExecutor.execute(executor, connection, statement)

        service = BackupService(make_config(), executor)
        with patch.object(executor, "execute", side_effect=execute):
            results = service.backup_all_databases(self.connection)

        self.assertEqual([r.database_name for r in results], ["Acct", "Game"])
        self.assertFalse(results[0].success)
        self.assertEqual(results[0].status, ExecutionStatus.FAILURE)
        self.assertIn("boom", results[0].error)
        self.assertTrue(results[1].success)
        self.assertEqual(len(executor.statements), 1)
        self.assertIn("[Game]", executor.statements[0])

    def test_backup_specific_database(self):
        executor = RecordingExecutor(self.events)
        service = BackupService(make_config(), executor)

        result = service.backup_specific_database(self.connection, "Game")

        self.assertTrue(result.success)
        self.assertEqual(len(executor.statements), 1)
        with self.assertRaises(CommandError):
            service.backup_specific_database(self.connection, "Other")


class ImmediateEvent(threading.Event):
    """Evento de parada cuya espera no bloquea y queda registrada"""

    def __init__(self, events):
        super().__init__()
        self.events = events

    def wait(self, timeout=None):
        self.events.append(("wait", timeout))
        return self.is_set()


class TestSchedulerService(unittest.TestCase):
    """Tests para SchedulerService"""

    def setUp(self):
        self.events = []
        self.handle = FakeHandle()
        self.connection = Connection(self.handle)

    def make_scheduler(self, executor, stop_event=None):
        service = BackupService(make_config(), executor)
        return SchedulerService(
            service, self.connection,
            stop_event=stop_event or ImmediateEvent(self.events),
            handle_signals=False,
        )

    def test_cycles_are_sequential(self):
        scheduler = self.make_scheduler(RecordingExecutor(self.events))

        scheduler.start(max_cycles=3)

        kinds = [event[0] for event in self.events]
        self.assertEqual(kinds, ["start", "end", "start", "end", "wait"] * 2 + ["start", "end", "start", "end"])
        self.assertEqual(scheduler.cycles_completed, 3)

        # La espera corresponde al intervalo configurado (1 minuto)
        waits = [event[1] for event in self.events if event[0] == "wait"]
        for timeout in waits:
            self.assertGreater(timeout, 55)
            self.assertLessEqual(timeout, 60)

    def test_connection_closed_on_exit(self):
        scheduler = self.make_scheduler(RecordingExecutor(self.events))
        scheduler.start(max_cycles=1)
        self.assertTrue(self.handle.closed)

    def test_stop_interrupts_loop(self):
        stop_event = ImmediateEvent(self.events)
        executor = RecordingExecutor(self.events, on_execute=lambda statement: stop_event.set())
        scheduler = self.make_scheduler(executor, stop_event)

        scheduler.start()

        # El ciclo en curso termina con ambas bases de datos antes de parar
        self.assertEqual(len(executor.statements), 2)
        self.assertEqual(scheduler.cycles_completed, 1)
        self.assertTrue(self.handle.closed)

    def test_failing_cycle_keeps_running(self):
        executor = RecordingExecutor(self.events, failing=["Acct", "Game"])
        scheduler = self.make_scheduler(executor)

        scheduler.start(max_cycles=2)

        self.assertEqual(len(executor.statements), 4)

    def test_unexpected_error_keeps_running(self):
        executor = MagicMock()
        executor.execute.side_effect = RuntimeError("boom")
        scheduler = self.make_scheduler(executor)

        scheduler.start(max_cycles=2)

        self.assertEqual(scheduler.cycles_completed, 2)
        # Ambas bases de datos se intentan en cada ciclo
        self.assertEqual(executor.execute.call_count, 4)

    def test_signal_sets_stop(self):
        stop_event = threading.Event()
        scheduler = self.make_scheduler(RecordingExecutor(self.events), stop_event)
        scheduler._signal_handler(signal.SIGTERM, None)
        self.assertTrue(stop_event.is_set())


class TestMain(unittest.TestCase):
    """Tests del punto de entrada"""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.config_file = self.temp_dir / "config.ini"

    def tearDown(self):
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def write_config(self, backup_dir: Path, interval: str = "1"):
        self.config_file.write_text(
            "[BackupSettings]\n"
            f"BackupDirectory={backup_dir}/\n"
            f"IntervalMinutes={interval}\n"
            "AccountServer=Acct\n"
            "GameDB=Game\n",
            encoding="utf-8",
        )

    @patch("main.ConnectionService")
    def test_uncreatable_directory_exits_before_connecting(self, mock_service):
        blocker = self.temp_dir / "blocker"
        blocker.write_text("x")
        self.write_config(blocker / "backups")

        self.assertEqual(main.main(["--config", str(self.config_file)]), 1)
        mock_service.return_value.connect.assert_not_called()

    @patch("main.ConnectionService")
    def test_malformed_interval_exits(self, mock_service):
        self.write_config(self.temp_dir / "backups", interval="abc")

        self.assertEqual(main.main(["--config", str(self.config_file)]), 1)
        mock_service.return_value.connect.assert_not_called()

    @patch("main.ConnectionService")
    def test_connection_failure_exits(self, mock_service):
        self.write_config(self.temp_dir / "backups")
        mock_service.return_value.connect.side_effect = DatabaseConnectionError("Failed to connect to SQL Server")

        self.assertEqual(main.main(["--config", str(self.config_file)]), 1)

    @patch("main.ConnectionService")
    def test_once_mode_end_to_end(self, mock_service):
        backup_dir = self.temp_dir / "backups"
        self.write_config(backup_dir)
        handle = FakeHandle(FakeCursor(error=FakeOdbcError("42000", "Acct failed (3013)")), FakeCursor())
        mock_service.return_value.connect.return_value = Connection(handle)

        self.assertEqual(main.main(["once", "--config", str(self.config_file)]), 1)
        self.assertTrue(backup_dir.is_dir())
        self.assertEqual(handle.cursors, [])
        self.assertTrue(handle.closed)

    def test_init_creates_config(self):
        with patch.object(main.Config, "BASE_DIR", self.temp_dir):
            self.assertEqual(main.main(["--init", "--config", str(self.config_file)]), 0)

        self.assertTrue(self.config_file.exists())
        self.assertTrue((self.temp_dir / ".env.example").exists())
        self.assertEqual(ConfigRepository(self.config_file).get_value("GameDB"), "GameDB")


if __name__ == '__main__':
    unittest.main()
