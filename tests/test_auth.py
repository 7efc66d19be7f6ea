# tests/test_auth.py - Passwords, tokens JWT y AuthService

from datetime import timedelta
from types import SimpleNamespace

import pytest

from ventas.constants import Rol, TokenType
from ventas.exceptions import DuplicateKey, InactiveAccount, InvalidCredentials, InvalidToken
from ventas.security import (
    create_access_token, create_refresh_token, create_token_pair, decode_token,
    get_password_hash, is_token_expired, verify_password, verify_token
)

USUARIO = SimpleNamespace(id=7, email="ana@ventas.com", rol=Rol.ADMIN)


def test_password_hash():
    hashed = get_password_hash("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("otro", hashed)


def test_access_token_contiene_claims():
    payload = verify_token(create_access_token(USUARIO), TokenType.ACCESS)

    assert payload["id"] == 7
    assert payload["email"] == "ana@ventas.com"
    assert payload["rol"] == "admin"
    assert payload["type"] == "access"
    assert payload["iss"] == "ventas-api"
    assert payload["aud"] == "ventas-client"


def test_tipo_de_token_incorrecto():
    with pytest.raises(InvalidToken, match="Invalid token type"):
        verify_token(create_refresh_token(USUARIO), TokenType.ACCESS)


def test_token_expirado():
    token = create_access_token(USUARIO, expires_delta=timedelta(seconds=-10))
    with pytest.raises(InvalidToken):
        verify_token(token)
    assert is_token_expired(token)


def test_token_alterado():
    token = create_access_token(USUARIO)
    with pytest.raises(InvalidToken):
        verify_token(token[:-4] + "abcd")
    with pytest.raises(InvalidToken):
        verify_token("no-es-un-jwt")
    assert decode_token("no-es-un-jwt") is None


def test_token_pair():
    tokens = create_token_pair(USUARIO)
    assert tokens["token_type"] == "bearer"
    assert verify_token(tokens["refresh_token"], TokenType.REFRESH)["id"] == 7
    assert not is_token_expired(tokens["access_token"])


async def test_register_y_login(db, auth_service):
    user = await auth_service.register(db, "Ana", "ana@ventas.com", "secret123")
    assert user.rol == Rol.VENDEDOR
    assert user.hashed_password != "secret123"

    result = await auth_service.login(db, "ana@ventas.com", "secret123")
    assert result["user"].id == user.id
    assert verify_token(result["access_token"], TokenType.ACCESS)["id"] == user.id

    with pytest.raises(DuplicateKey):
        await auth_service.register(db, "Ana 2", "ana@ventas.com", "secret123")


async def test_login_invalido(db, auth_service):
    await auth_service.register(db, "Ana", "ana@ventas.com", "secret123")

    with pytest.raises(InvalidCredentials):
        await auth_service.login(db, "ana@ventas.com", "incorrecto")
    with pytest.raises(InvalidCredentials):
        await auth_service.login(db, "nadie@ventas.com", "secret123")


async def test_usuario_inactivo(db, auth_service):
    await auth_service.register(db, "Ana", "ana@ventas.com", "secret123", activo=False)
    with pytest.raises(InactiveAccount):
        await auth_service.login(db, "ana@ventas.com", "secret123")


async def test_refresh_y_cambio_de_password(db, auth_service):
    user = await auth_service.register(db, "Ana", "ana@ventas.com", "secret123")
    tokens = await auth_service.login(db, "ana@ventas.com", "secret123")

    refreshed = await auth_service.refresh_access_token(db, tokens["refresh_token"])
    assert verify_token(refreshed["access_token"], TokenType.ACCESS)["id"] == user.id
    with pytest.raises(InvalidToken):
        await auth_service.refresh_access_token(db, tokens["access_token"])

    with pytest.raises(InvalidCredentials):
        await auth_service.change_password(db, user.id, "incorrecto", "nuevo123")
    await auth_service.change_password(db, user.id, "secret123", "nuevo123")
    await auth_service.login(db, "ana@ventas.com", "nuevo123")
