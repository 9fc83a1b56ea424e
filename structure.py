"""
MSSQLBackupAgent/
│
├── src/
│   ├── __init__.py
│   ├── config.py                   # Configuración y constantes
│   ├── exceptions.py               # Jerarquía de errores
│   ├── logger.py                   # Servicio de logging
│   ├── models.py                   # Modelos de datos
│   ├── repositories/
│   │   ├── __init__.py
│   │   └── config_repository.py    # Lectura de config.ini
│   └── services/
│       ├── __init__.py
│       ├── connection_service.py   # Conexión ODBC con SQL Server
│       ├── diagnostics.py          # Registros de diagnóstico del driver
│       ├── command_executor.py     # Ejecución de sentencias
│       ├── backup_service.py       # Ciclo de backup de las dos bases
│       └── scheduler_service.py    # Programación por intervalo
│
├── tests/
│   ├── test_backup.py              # Tests de configuración y modelos
│   └── test_services.py            # Tests de servicios y punto de entrada
│
├── main.py                         # Punto de entrada
├── pyproject.toml
├── .env.example                    # Generado con --init
└── config.ini                      # Generado con --init
"""
