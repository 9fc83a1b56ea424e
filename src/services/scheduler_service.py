"""
Servicio de programación del ciclo de backup
"""
import schedule
import signal
import threading
from typing import Optional
from ..logger import LoggerService
from .backup_service import BackupService
from .connection_service import Connection


class SchedulerService:
    """Ejecuta ciclos de backup separados por el intervalo configurado"""

    def __init__(self, backup_service: BackupService, connection: Connection,
                 stop_event: Optional[threading.Event] = None, handle_signals: bool = True):
        """
        Inicializa el servicio de programación

        Args:
            backup_service: Servicio de backup a ejecutar en cada ciclo
            connection: Conexión abierta, propiedad del scheduler hasta el cierre
            stop_event: Señal de parada (opcional)
            handle_signals: Registrar SIGINT/SIGTERM para detener el servicio
        """
        self.backup_service = backup_service
        self.connection = connection
        self.logger = LoggerService.get_logger("SchedulerService")
        self.cycles_completed = 0

        self._stop_event = stop_event or threading.Event()
        self._scheduler = schedule.Scheduler()

        if handle_signals:
            signal.signal(signal.SIGINT, self._signal_handler)
            signal.signal(signal.SIGTERM, self._signal_handler)

    @property
    def interval_minutes(self) -> int:
        return self.backup_service.config.interval_minutes

    def start(self, max_cycles: Optional[int] = None):
        """
        Inicia el ciclo de backups; el primero se ejecuta inmediatamente

        El intervalo se cuenta desde el final de cada ciclo, por lo que es
        una separación mínima y no una frecuencia fija.

        Args:
            max_cycles: Número máximo de ciclos (None = hasta recibir la señal de parada)
        """
        config = self.backup_service.config
        self._scheduler.every(self.interval_minutes).minutes.do(self._run_backup_job)

        self.logger.info("=" * 70)
        self.logger.info("SERVICIO DE BACKUP AUTOMÁTICO INICIADO")
        self.logger.info("=" * 70)
        self.logger.info(f"Servidor: {config.server_instance}")
        self.logger.info(f"Directorio de backups: {config.backup_directory}")
        self.logger.info(f"Intervalo: {self.interval_minutes} minuto(s)")
        for name in config.target_databases:
            self.logger.info(f"  - {name}")
        self.logger.info("Presiona Ctrl+C para detener el servicio")
        self.logger.info("=" * 70)

        try:
            while not self._stop_event.is_set():
                # La espera previa ya cubre el intervalo completo
                self._scheduler.run_all()

                if max_cycles is not None and self.cycles_completed >= max_cycles:
                    break

                self.logger.info(f"Waiting for {self.interval_minutes} minutes before next backup...")
                self.logger.info(f"Próxima ejecución: {self.get_next_run()}")
                if self._stop_event.wait(max(self._scheduler.idle_seconds or 0, 0)):
                    break
        finally:
            self._shutdown()

    def stop(self):
        """Solicita la parada; interrumpe la espera entre ciclos"""
        self._stop_event.set()

    def _run_backup_job(self):
        """Ejecuta un ciclo de backup completo"""
        try:
            results = self.backup_service.backup_all_databases(self.connection)

            failed = [r for r in results if not r.success]
            if failed:
                self.logger.warning(
                    f"Ciclo de backup completado con {len(failed)} error(es): "
                    + ", ".join(r.database_name for r in failed)
                )
            else:
                self.logger.info("Ciclo de backup completado exitosamente")
        except Exception as e:
            self.logger.error(f"Error crítico durante backup: {e}", exc_info=True)
        finally:
            self.cycles_completed += 1

    def _signal_handler(self, signum, frame):
        """
        Manejador de señales para shutdown graceful

        Args:
            signum: Número de señal
            frame: Frame actual
        """
        self.logger.info(f"Señal recibida: {signal.Signals(signum).name}")
        self.stop()

    def _shutdown(self):
        """Cierra la conexión y limpia los trabajos programados"""
        self.logger.info("Deteniendo servicio de backup...")
        self._scheduler.clear()
        self.connection.close()
        self.logger.info("Servicio detenido correctamente")

    def get_next_run(self) -> str:
        """
        Obtiene la fecha de la próxima ejecución

        Returns:
            String con la fecha de la próxima ejecución
        """
        next_run = self._scheduler.next_run
        if next_run:
            return next_run.strftime('%Y-%m-%d %H:%M:%S')
        return "No hay ejecuciones programadas"
