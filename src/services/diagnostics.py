"""
Lectura de registros de diagnóstico ODBC expuestos por pyodbc
"""
import re
from typing import Iterable, Iterator

from ..models import DiagnosticRecord

# pyodbc concatena los registros adicionales como "; [SQLSTATE] mensaje (nativo)"
_RECORD_SEPARATOR = re.compile(r";\s*\[([0-9A-Z]{5})\]\s*")
_NATIVE_SUFFIX = re.compile(r"\s*\((-?\d+)\)(?:\s*\(\w+\))?\s*$")
_MESSAGE_HEADER = re.compile(r"\[([0-9A-Z]{5})\]\s*\((-?\d+)\)")
_LEADING_STATE = re.compile(r"^\s*\[[0-9A-Z]{5}\]\s*")

GENERAL_ERROR_STATE = "HY000"


def _make_record(sql_state: str, text: str) -> DiagnosticRecord:
    match = _NATIVE_SUFFIX.search(text)
    if match:
        return DiagnosticRecord(sql_state, int(match.group(1)), text[:match.start()].strip())
    return DiagnosticRecord(sql_state, 0, text.strip())


def iter_diagnostics(error: BaseException) -> Iterator[DiagnosticRecord]:
    """
    Recorre los registros de diagnóstico de un error del driver

    pyodbc.Error guarda (sqlstate, texto) en args; el texto incluye todos los
    registros devueltos por SQLGetDiagRec. Cualquier otro error con mensaje
    produce un único registro genérico.

    Args:
        error: Excepción levantada por el driver

    Yields:
        DiagnosticRecord en el orden devuelto por el driver
    """
    args = getattr(error, "args", ())
    if len(args) >= 2 and isinstance(args[0], str) and isinstance(args[1], str):
        parts = _RECORD_SEPARATOR.split(args[1])
        yield _make_record(args[0], _LEADING_STATE.sub("", parts[0], count=1))
        for sql_state, text in zip(parts[1::2], parts[2::2]):
            yield _make_record(sql_state, text)
    elif args and str(error):
        yield DiagnosticRecord(GENERAL_ERROR_STATE, 0, str(error))


def iter_messages(messages: Iterable) -> Iterator[DiagnosticRecord]:
    """
    Recorre los mensajes informativos de un cursor (Cursor.messages)

    Cada mensaje es una tupla ("[01000] (3211)", texto).

    Yields:
        DiagnosticRecord por cada mensaje
    """
    for header, text in messages:
        match = _MESSAGE_HEADER.search(header)
        if match:
            yield DiagnosticRecord(match.group(1), int(match.group(2)), text)
        else:
            yield DiagnosticRecord(GENERAL_ERROR_STATE, 0, text)
