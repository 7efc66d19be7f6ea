# tests/test_encryption.py - Encriptación simétrica, híbrida y de pedidos

from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from ventas.exceptions import EncryptionError
from ventas.services import HybridEncryptionService, PedidoEncryptionService


@pytest.fixture
def hybrid():
    return HybridEncryptionService("clave-de-prueba")


@pytest.fixture(scope="module")
def keypair():
    return HybridEncryptionService.generate_rsa_key_pair()


def test_encriptacion_simetrica(hybrid):
    token = hybrid.encrypt("dato sensible")
    assert "dato sensible" not in token
    assert hybrid.decrypt(token) == "dato sensible"


def test_clave_incorrecta_o_token_alterado(hybrid):
    token = hybrid.encrypt("dato sensible")

    with pytest.raises(EncryptionError):
        HybridEncryptionService("otra-clave").decrypt(token)
    with pytest.raises(EncryptionError):
        hybrid.decrypt("no-es-un-jwe")


def test_encriptacion_hibrida(hybrid, keypair):
    assert keypair["public_key"].startswith("-----BEGIN PUBLIC KEY-----")
    assert "PRIVATE KEY" in keypair["private_key"]

    token = hybrid.hybrid_encrypt("dato sensible", keypair["public_key"])
    assert hybrid.hybrid_decrypt(token, keypair["private_key"]) == "dato sensible"


def test_hibrida_con_clave_privada_ajena(hybrid, keypair):
    token = hybrid.hybrid_encrypt("dato sensible", keypair["public_key"])
    otra = HybridEncryptionService.generate_rsa_key_pair()
    with pytest.raises(EncryptionError):
        hybrid.hybrid_decrypt(token, otra["private_key"])


def test_hash_y_random(hybrid):
    assert hybrid.hash_data("abc") == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    valor = hybrid.generate_secure_random(16)
    assert len(valor) == 32
    assert valor != hybrid.generate_secure_random(16)
    with pytest.raises(EncryptionError):
        hybrid.generate_secure_random(0)


def _pedido():
    detalle = SimpleNamespace(producto_id=3, cantidad=2, precio_unitario=Decimal("89.99"), subtotal=Decimal("179.98"))
    return SimpleNamespace(
        id=1, cliente_id=2, usuario_id=4, total=Decimal("179.98"), estado="pendiente",
        fecha=datetime(2024, 5, 1, tzinfo=timezone.utc), observaciones="Frágil", detalles=[detalle],
    )


def test_encriptar_y_desencriptar_pedido(hybrid):
    service = PedidoEncryptionService(hybrid)
    encriptado = service.encrypt_pedido_data(_pedido())

    assert encriptado["pedido_id"] == 1
    datos = service.decrypt_pedido_data(encriptado)
    assert datos["observaciones"] == "Frágil"
    assert datos["detalles"][0]["subtotal"] == "179.98"
    assert datos["metadata"]["estado"] == "pendiente"


def test_pedido_con_clave_publica(hybrid, keypair):
    service = PedidoEncryptionService(hybrid)
    encriptado = service.encrypt_pedido_data(_pedido(), keypair["public_key"])

    with pytest.raises(EncryptionError):
        service.decrypt_pedido_data(encriptado)
    datos = service.decrypt_pedido_data(encriptado, keypair["private_key"])
    assert datos["metadata"]["cliente_id"] == 2


def test_auditoria_e_integridad(hybrid):
    service = PedidoEncryptionService(hybrid)
    registro = hybrid.decrypt_json(service.generate_audit_log("cancel", 1, 4))
    assert registro["operation"] == "cancel"
    assert len(registro["hash"]) == 64

    token = hybrid.encrypt("contenido")
    assert service.verify_integrity(token, hybrid.hash_data("contenido"))
    assert not service.verify_integrity(token, hybrid.hash_data("otro"))
    assert not service.verify_integrity("basura", hybrid.hash_data("contenido"))

    stats = {"total_pedidos": 3}
    assert service.decrypt_statistics(service.encrypt_statistics(stats)) == stats


def test_datos_de_creacion(hybrid):
    service = PedidoEncryptionService(hybrid)
    token = service.encrypt_pedido_creation({"cliente_id": 2, "productos": [{"producto_id": 3, "cantidad": 1}]}, 4)

    datos = service.decrypt_pedido_creation(token)
    assert datos["usuario_id"] == 4
    assert datos["productos"] == [{"producto_id": 3, "cantidad": 1}]
    with pytest.raises(EncryptionError):
        service.decrypt_pedido_creation(hybrid.encrypt_json({"otro": 1}))
