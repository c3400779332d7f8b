from __future__ import annotations

"""
nasne_remote/errors.py

Errores que salen hacia el llamante.

Solo DeviceUnreachable se lanza. "No encontrado" (forma de respuesta no reconocida,
sin endpoint DLNA, sin recurso) se expresa con None y con NotFoundReason
(ver nasne_remote.models), nunca con excepciones.
"""


class DeviceError(Exception):
    """Base de errores del cliente."""


class DeviceUnreachable(DeviceError):
    """
    El dispositivo no respondió como se esperaba.

    - status_code: código HTTP si hubo respuesta no-2xx; None si fue conexión/timeout/JSON.
    - url: URL de la petición fallida.
    """

    def __init__(self, message: str, *, status_code: int | None = None, url: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url
