#!/usr/bin/env python3
"""
Agente de Backup Automático de SQL Server
Punto de entrada principal

Uso:
    python main.py                  # Modo scheduler (automático)
    python main.py once             # Ejecutar un ciclo de backup
    python main.py --db nombre_db   # Backup de una BD específica
    python main.py --help           # Ayuda
"""
import sys
import argparse
import logging
from pathlib import Path

# Agregar directorio raíz al path
sys.path.insert(0, str(Path(__file__).parent))

from src import __version__
from src.config import Config
from src.exceptions import BackupAgentError
from src.logger import LoggerService
from src.repositories.config_repository import ConfigRepository
from src.services.backup_service import BackupService
from src.services.connection_service import ConnectionService
from src.services.scheduler_service import SchedulerService


def parse_arguments(argv=None):
    """
    Parsea argumentos de línea de comandos

    Returns:
        Namespace con los argumentos parseados
    """
    parser = argparse.ArgumentParser(
        description='Agente de backup completo de bases de datos SQL Server',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Ejemplos:
  python main.py                        # Iniciar servicio automático
  python main.py once                   # Ejecutar un ciclo de backup
  python main.py --db GameDB            # Backup de una base específica
  python main.py --config otro.ini      # Usar otro archivo de configuración
  python main.py --init                 # Crear archivos de configuración
        """
    )

    parser.add_argument(
        'mode',
        nargs='?',
        choices=['once', 'scheduler'],
        default='scheduler',
        help='Modo de ejecución (default: scheduler)'
    )

    parser.add_argument(
        '--config',
        type=Path,
        metavar='RUTA',
        help=f'Archivo de configuración (default: {Config.CONFIG_FILE})'
    )

    parser.add_argument(
        '--db',
        type=str,
        metavar='NOMBRE',
        help='Realizar backup de una base de datos configurada'
    )

    parser.add_argument(
        '--init',
        action='store_true',
        help='Crear archivos de configuración de ejemplo'
    )

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Mostrar mensajes de depuración'
    )

    return parser.parse_args(argv)


def initialize_config(config_repo: ConfigRepository):
    """
    Inicializa archivos de configuración si no existen

    Args:
        config_repo: Repositorio de configuración
    """
    logger = LoggerService.get_logger("Init")
    created_files = []

    if not config_repo.config_file.exists():
        if config_repo.create_example_config():
            created_files.append(str(config_repo.config_file))

    env_example = Config.BASE_DIR / ".env.example"
    if not env_example.exists():
        env_content = """# Variables de entorno para credenciales
# Copia este archivo como .env y completa con tus credenciales

MSSQL_USER=sa
MSSQL_PASSWORD=password_sqlserver

# Opcional
# ODBC_DRIVER=ODBC Driver 18 for SQL Server
"""
        try:
            with open(env_example, 'w', encoding='utf-8') as f:
                f.write(env_content)
            created_files.append(str(env_example))
        except OSError as e:
            logger.error(f"Error creando .env.example: {e}")

    if created_files:
        logger.info("=" * 70)
        logger.info("ARCHIVOS DE CONFIGURACIÓN CREADOS")
        logger.info("=" * 70)
        for file in created_files:
            logger.info(f"  - {file}")
        logger.info("")
        logger.info("IMPORTANTE:")
        logger.info("1. Copia .env.example como .env y completa las credenciales")
        logger.info("2. Edita config.ini con el servidor y las bases de datos")
        logger.info("3. Ejecuta nuevamente este script")
        logger.info("=" * 70)
    else:
        logger.info("Los archivos de configuración ya existen")


def main(argv=None) -> int:
    """
    Función principal

    Returns:
        Código de salida del proceso
    """
    args = parse_arguments(argv)
    if args.verbose:
        LoggerService.set_level(logging.DEBUG)
    logger = LoggerService.get_logger("Main")

    logger.info(f"MSSQL Database Backup Tool {__version__}")
    logger.info("Backup completo de AccountServer y GameDB cada N minutos")

    config_repo = ConfigRepository(args.config)

    if args.init:
        initialize_config(config_repo)
        return 0

    logger.info(f"Loading config file: {config_repo.config_file}")

    try:
        config = config_repo.get_backup_config()
        Config.ensure_backup_directory(config.backup_directory)
    except BackupAgentError as e:
        logger.error(str(e))
        logger.error("Cannot proceed without valid configuration and backup directory.")
        return 1

    try:
        connection = ConnectionService().connect(config)
    except BackupAgentError as e:
        logger.error(str(e))
        return 1

    backup_service = BackupService(config)

    # Modo backup específico
    if args.db:
        with connection:
            try:
                result = backup_service.backup_specific_database(connection, args.db)
            except BackupAgentError as e:
                logger.error(str(e))
                return 1
        logger.info(str(result))
        return 0 if result.success else 1

    # Modo once (un solo ciclo)
    if args.mode == 'once':
        logger.info("Modo: Ejecución única")
        with connection:
            results = backup_service.backup_all_databases(connection)
        return 1 if any(not r.success for r in results) else 0

    # Modo scheduler (por defecto)
    scheduler = SchedulerService(backup_service, connection)
    scheduler.start()
    return 0


def run():
    """Punto de entrada de consola"""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nPrograma interrumpido por el usuario")
        sys.exit(0)
    except Exception as e:
        print(f"Error crítico: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    run()
