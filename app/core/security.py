"""
Seguridad: validación de los JWT emitidos por el proveedor de identidad

El login lo maneja el proveedor externo; el backend solo valida la firma y
lee el uid del usuario (claim "sub").
"""

import logging
from typing import Optional

from jose import JWTError, jwt

from app.core.config import get_settings

logger = logging.getLogger(__name__)


def decode_access_token(token: str) -> Optional[dict]:
    """
    Decodifica y valida un JWT

    Retorna el payload si es válido, None si está expirado o corrupto
    """
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm]
        )
    except JWTError as e:
        # Token inválido, expirado, o corrupto
        logger.debug(f"Rejected token: {e}")
        return None
