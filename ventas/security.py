# ventas/security.py - Hash de passwords y tokens JWT

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from . import config
from .constants import Rol, TokenType
from .exceptions import InvalidToken

# Setup de password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# ============================================================================
# FUNCIONES DE PASSWORD
# ============================================================================


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verificar password plano contra hash"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Generar hash de password"""
    return pwd_context.hash(password)

# ============================================================================
# FUNCIONES DE JWT
# ============================================================================


def _token_lifetime(token_type: TokenType) -> timedelta:
    if token_type == TokenType.REFRESH:
        return timedelta(days=config.REFRESH_TOKEN_EXPIRE_DAYS)
    return timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)


def create_token(usuario, token_type: TokenType, expires_delta: Optional[timedelta] = None) -> str:
    """Crear JWT firmado con id, email, rol y tipo de token"""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta if expires_delta is not None else _token_lifetime(token_type))
    to_encode = {
        "sub": str(usuario.id),
        "id": usuario.id,
        "email": usuario.email,
        "rol": Rol(usuario.rol).value,
        "type": token_type.value,
        "iat": now,
        "exp": expire,
        "iss": config.JWT_ISSUER,
        "aud": config.JWT_AUDIENCE,
    }
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def create_access_token(usuario, expires_delta: Optional[timedelta] = None) -> str:
    return create_token(usuario, TokenType.ACCESS, expires_delta)


def create_refresh_token(usuario, expires_delta: Optional[timedelta] = None) -> str:
    return create_token(usuario, TokenType.REFRESH, expires_delta)


def create_token_pair(usuario) -> Dict[str, str]:
    return {
        "access_token": create_access_token(usuario),
        "refresh_token": create_refresh_token(usuario),
        "token_type": "bearer",
    }


def verify_token(token: str, expected_type: Optional[TokenType] = None) -> Dict[str, Any]:
    """Verificar y decodificar JWT token; cualquier fallo es InvalidToken"""
    try:
        payload = jwt.decode(
            token,
            config.SECRET_KEY,
            algorithms=[config.ALGORITHM],
            audience=config.JWT_AUDIENCE,
            issuer=config.JWT_ISSUER,
        )
    except JWTError as exc:
        raise InvalidToken() from exc

    if not isinstance(payload.get("id"), int):
        raise InvalidToken()
    if expected_type is not None and payload.get("type") != expected_type.value:
        raise InvalidToken("Invalid token type")
    return payload


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """Decodificar sin verificar la firma (solo para inspección)"""
    try:
        return jwt.get_unverified_claims(token)
    except JWTError:
        return None


def get_token_expiration(token: str) -> Optional[datetime]:
    payload = decode_token(token)
    if not payload or "exp" not in payload:
        return None
    return datetime.fromtimestamp(payload["exp"], tz=timezone.utc)


def is_token_expired(token: str) -> bool:
    expiration = get_token_expiration(token)
    return expiration is None or expiration <= datetime.now(timezone.utc)
