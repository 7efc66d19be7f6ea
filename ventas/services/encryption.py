# ventas/services/encryption.py - Encriptación de datos sensibles (JWE)

import hashlib
import json
import logging
import secrets
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwe
from jose.constants import ALGORITHMS
from jose.exceptions import JOSEError

from ..exceptions import EncryptionError

logger = logging.getLogger(__name__)


def _to_json(data: Any) -> str:
    # Decimal y datetime se serializan como texto
    return json.dumps(data, default=str, ensure_ascii=False)


class HybridEncryptionService:
    """
    Encriptación simétrica (JWE `dir` + A256GCM) con una clave derivada de
    ENCRYPTION_KEY, e híbrida (RSA-OAEP-256 + A256GCM) con un par de
    claves RSA en formato PEM.
    """

    def __init__(self, secret: str):
        if not secret:
            raise EncryptionError("Encryption key is required")
        # SHA-256 da exactamente los 32 bytes que pide A256GCM
        self._key = hashlib.sha256(secret.encode("utf-8")).digest()

    # ==============================
    # Simétrica
    # ==============================

    def encrypt(self, data: str) -> str:
        try:
            token = jwe.encrypt(data.encode("utf-8"), self._key,
                                algorithm=ALGORITHMS.DIR, encryption=ALGORITHMS.A256GCM)
        except (JOSEError, InvalidTag, TypeError, ValueError) as exc:
            logger.error("Error encriptando datos: %s", exc)
            raise EncryptionError("Failed to encrypt data") from exc
        return token.decode("utf-8")

    def decrypt(self, token: str) -> str:
        try:
            plaintext = jwe.decrypt(token, self._key)
        except (JOSEError, InvalidTag, TypeError, ValueError) as exc:
            logger.warning("Error desencriptando datos: %s", exc)
            raise EncryptionError("Failed to decrypt data") from exc
        if plaintext is None:
            raise EncryptionError("Failed to decrypt data")
        return plaintext.decode("utf-8")

    # ==============================
    # Híbrida (RSA)
    # ==============================

    @staticmethod
    def generate_rsa_key_pair(key_size: int = 2048) -> Dict[str, str]:
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
        private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        public_pem = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        logger.info("Par de claves RSA generado (%s bits)", key_size)
        return {"public_key": public_pem.decode("utf-8"), "private_key": private_pem.decode("utf-8")}

    def hybrid_encrypt(self, data: str, public_key_pem: str) -> str:
        try:
            token = jwe.encrypt(data.encode("utf-8"), public_key_pem,
                                algorithm=ALGORITHMS.RSA_OAEP_256, encryption=ALGORITHMS.A256GCM)
        except (JOSEError, InvalidTag, TypeError, ValueError) as exc:
            logger.error("Error en encriptación híbrida: %s", exc)
            raise EncryptionError("Failed to encrypt data with public key") from exc
        return token.decode("utf-8")

    def hybrid_decrypt(self, token: str, private_key_pem: str) -> str:
        try:
            plaintext = jwe.decrypt(token, private_key_pem)
        except (JOSEError, InvalidTag, TypeError, ValueError) as exc:
            logger.warning("Error en desencriptación híbrida: %s", exc)
            raise EncryptionError("Failed to decrypt data with private key") from exc
        if plaintext is None:
            raise EncryptionError("Failed to decrypt data with private key")
        return plaintext.decode("utf-8")

    # ==============================
    # Utilidades
    # ==============================

    @staticmethod
    def hash_data(data: str) -> str:
        return hashlib.sha256(data.encode("utf-8")).hexdigest()

    @staticmethod
    def generate_secure_random(length: int = 32) -> str:
        """`length` bytes aleatorios en hexadecimal"""
        if length <= 0:
            raise EncryptionError("Length must be positive")
        return secrets.token_hex(length)

    def encrypt_json(self, data: Any, public_key_pem: Optional[str] = None) -> str:
        text = _to_json(data)
        if public_key_pem:
            return self.hybrid_encrypt(text, public_key_pem)
        return self.encrypt(text)

    def decrypt_json(self, token: str, private_key_pem: Optional[str] = None) -> Any:
        text = self.hybrid_decrypt(token, private_key_pem) if private_key_pem else self.decrypt(token)
        try:
            return json.loads(text)
        except ValueError as exc:
            raise EncryptionError("Decrypted data is not valid JSON") from exc


class PedidoEncryptionService:
    """Encriptación de los campos sensibles de un pedido"""

    def __init__(self, hybrid: HybridEncryptionService):
        self.hybrid = hybrid

    def encrypt_pedido_data(self, pedido, public_key_pem: Optional[str] = None) -> Dict[str, Any]:
        detalles = [
            {
                "producto_id": d.producto_id,
                "cantidad": d.cantidad,
                "precio_unitario": d.precio_unitario,
                "subtotal": d.subtotal,
            }
            for d in pedido.detalles
        ]
        metadata = {
            "cliente_id": pedido.cliente_id,
            "usuario_id": pedido.usuario_id,
            "total": pedido.total,
            "estado": getattr(pedido.estado, "value", pedido.estado),
            "fecha": pedido.fecha,
        }
        observaciones = None
        if pedido.observaciones:
            observaciones = self.hybrid.encrypt_json(pedido.observaciones, public_key_pem)

        logger.info("Pedido %s encriptado", pedido.id)
        return {
            "pedido_id": pedido.id,
            "encrypted_observaciones": observaciones,
            "encrypted_detalles": self.hybrid.encrypt_json(detalles, public_key_pem),
            "encrypted_metadata": self.hybrid.encrypt_json(metadata, public_key_pem),
        }

    def decrypt_pedido_data(self, encrypted: Dict[str, Any], private_key_pem: Optional[str] = None) -> Dict[str, Any]:
        if not encrypted.get("encrypted_detalles") or not encrypted.get("encrypted_metadata"):
            raise EncryptionError("Encrypted detalles and metadata are required")
        observaciones = None
        if encrypted.get("encrypted_observaciones"):
            observaciones = self.hybrid.decrypt_json(encrypted["encrypted_observaciones"], private_key_pem)
        return {
            "observaciones": observaciones,
            "detalles": self.hybrid.decrypt_json(encrypted["encrypted_detalles"], private_key_pem),
            "metadata": self.hybrid.decrypt_json(encrypted["encrypted_metadata"], private_key_pem),
        }

    def encrypt_pedido_creation(self, data: Dict[str, Any], usuario_id: int) -> str:
        """Datos de creación de un pedido, con el usuario y la hora agregados"""
        payload = dict(data, usuario_id=usuario_id, timestamp=datetime.now(timezone.utc).isoformat())
        logger.info("Datos de creación de pedido encriptados (usuario=%s)", usuario_id)
        return self.hybrid.encrypt_json(payload)

    def decrypt_pedido_creation(self, token: str) -> Dict[str, Any]:
        data = self.hybrid.decrypt_json(token)
        if not isinstance(data, dict) or "cliente_id" not in data or "productos" not in data:
            raise EncryptionError("Invalid pedido creation data")
        return data

    def encrypt_statistics(self, stats: Dict[str, Any], generated_by: Optional[int] = None) -> str:
        if generated_by is not None:
            stats = dict(stats, generated_by=generated_by)
        return self.hybrid.encrypt_json(stats)

    def decrypt_statistics(self, token: str) -> Dict[str, Any]:
        return self.hybrid.decrypt_json(token)

    def generate_audit_log(self, operation: str, pedido_id: int, usuario_id: int,
                           extra: Optional[Dict[str, Any]] = None) -> str:
        """Registro de auditoría encriptado con un hash del contenido"""
        record = {
            "operation": operation,
            "pedido_id": pedido_id,
            "usuario_id": usuario_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "extra": extra or {},
        }
        record["hash"] = self.hybrid.hash_data(_to_json(record))
        return self.hybrid.encrypt_json(record)

    def verify_integrity(self, token: str, expected_hash: str) -> bool:
        """Comparar el hash del texto desencriptado con el esperado"""
        try:
            text = self.hybrid.decrypt(token)
        except EncryptionError:
            return False
        return secrets.compare_digest(self.hybrid.hash_data(text), expected_hash)
