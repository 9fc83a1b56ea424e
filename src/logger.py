"""
Servicio de logging del agente

Todos los componentes escriben en un único archivo diario y en consola.
Las contraseñas de las cadenas de conexión se enmascaran antes de escribirse.
"""
import logging
import re
import sys
from datetime import datetime
from typing import List
from .config import Config


class CredentialFilter(logging.Filter):
    """Enmascara PWD=... en los mensajes"""

    _PATTERN = re.compile(r"(PWD=)[^;]*", re.IGNORECASE)

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = self._PATTERN.sub(r"\1***", message)
        if masked != message:
            record.msg, record.args = masked, None
        return True


class LoggerService:
    """Servicio centralizado de logging"""

    _loggers = {}
    _handlers: List[logging.Handler] = []
    _level = Config.LOG_LEVEL

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """
        Obtiene o crea un logger con el nombre especificado

        Args:
            name: Nombre del componente

        Returns:
            Logger configurado
        """
        if name not in cls._loggers:
            cls._loggers[name] = cls._setup_logger(name)
        return cls._loggers[name]

    @classmethod
    def set_level(cls, level: int):
        """Cambia el nivel de todos los loggers y handlers ya creados"""
        cls._level = level
        for handler in cls._handlers:
            handler.setLevel(level)
        for logger in cls._loggers.values():
            logger.setLevel(level)

    @classmethod
    def log_file(cls):
        return Config.LOG_DIR / f"{Config.LOG_FILE_PREFIX}_{datetime.now().strftime('%Y%m%d')}.log"

    @classmethod
    def _shared_handlers(cls) -> List[logging.Handler]:
        """Crea una sola vez el handler de archivo y el de consola"""
        if cls._handlers:
            return cls._handlers

        Config.ensure_log_directory()
        formatter = logging.Formatter(Config.LOG_FORMAT)
        credential_filter = CredentialFilter()

        file_handler = logging.FileHandler(cls.log_file(), encoding='utf-8')
        console_handler = logging.StreamHandler(sys.stdout)

        for handler in (file_handler, console_handler):
            handler.setLevel(cls._level)
            handler.setFormatter(formatter)
            handler.addFilter(credential_filter)

        cls._handlers = [file_handler, console_handler]
        return cls._handlers

    @classmethod
    def _setup_logger(cls, name: str) -> logging.Logger:
        logger = logging.getLogger(name)
        logger.setLevel(cls._level)

        # Evitar duplicar handlers
        if not logger.handlers:
            for handler in cls._shared_handlers():
                logger.addHandler(handler)

        return logger
