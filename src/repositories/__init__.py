"""
Repositorios de configuración
"""
from .config_repository import ConfigRepository, resolve

__all__ = [
    'ConfigRepository',
    'resolve'
]
