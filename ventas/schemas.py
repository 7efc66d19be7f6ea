# ventas/schemas.py - Schemas Pydantic (validación y serialización)

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field

from .constants import EstadoPedido, Rol, TipoDocumento

# ============================================================================
# UTILITY SCHEMAS
# ============================================================================


class Pagination(BaseModel):
    """Metadatos de paginación"""
    page: int
    limit: int
    total: int
    total_pages: int


class MessageResponse(BaseModel):
    """Schema para respuestas simples"""
    message: str
    status: str = "success"

# ============================================================================
# USUARIO SCHEMAS
# ============================================================================


class UsuarioBase(BaseModel):
    """Base schema para Usuario"""
    nombre: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    rol: Rol = Rol.VENDEDOR
    activo: bool = True


class UsuarioCreate(UsuarioBase):
    """Schema para crear usuario"""
    password: str = Field(..., min_length=6, max_length=50)


class UsuarioUpdate(BaseModel):
    """Schema para actualizar usuario"""
    nombre: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    rol: Optional[Rol] = None
    activo: Optional[bool] = None
    password: Optional[str] = Field(None, min_length=6, max_length=50)


class Usuario(UsuarioBase):
    """Schema para respuesta de usuario (sin password)"""
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UsuarioList(BaseModel):
    usuarios: List[Usuario]
    pagination: Pagination

# ============================================================================
# AUTHENTICATION SCHEMAS
# ============================================================================


class RegisterRequest(BaseModel):
    """Registro público: siempre crea vendedores"""
    nombre: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=50)


class Token(BaseModel):
    """Schema para par de tokens JWT"""
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"


class LoginResponse(Token):
    user: Usuario


class RefreshRequest(BaseModel):
    refresh_token: str


class TokenVerifyRequest(BaseModel):
    token: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6, max_length=50)


class TokenData(BaseModel):
    """Payload de un token verificado"""
    id: int
    email: Optional[str] = None
    rol: Optional[Rol] = None
    type: Optional[str] = None
    exp: Optional[int] = None

# ============================================================================
# CLIENTE SCHEMAS
# ============================================================================


class ClienteBase(BaseModel):
    """Base schema para Cliente"""
    nombre: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    telefono: Optional[str] = Field(None, max_length=20)
    direccion: Optional[str] = Field(None, max_length=1000)
    documento: str = Field(..., min_length=3, max_length=50)
    tipo_documento: TipoDocumento = TipoDocumento.CEDULA


class ClienteCreate(ClienteBase):
    """Schema para crear cliente"""
    pass


class ClienteUpdate(BaseModel):
    """Schema para actualizar cliente"""
    nombre: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    telefono: Optional[str] = Field(None, max_length=20)
    direccion: Optional[str] = Field(None, max_length=1000)
    documento: Optional[str] = Field(None, min_length=3, max_length=50)
    tipo_documento: Optional[TipoDocumento] = None
    activo: Optional[bool] = None


class Cliente(ClienteBase):
    """Schema para respuesta de cliente"""
    id: int
    activo: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ClienteList(BaseModel):
    clientes: List[Cliente]
    pagination: Pagination

# ============================================================================
# PRODUCTO SCHEMAS
# ============================================================================


class ProductoBase(BaseModel):
    """Base schema para Producto"""
    codigo: str = Field(..., min_length=1, max_length=50)
    nombre: str = Field(..., min_length=2, max_length=100)
    descripcion: Optional[str] = Field(None, max_length=1000)
    precio: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    stock: int = Field(0, ge=0)
    categoria: str = Field(..., min_length=2, max_length=50)


class ProductoCreate(ProductoBase):
    """Schema para crear producto"""
    pass


class ProductoUpdate(BaseModel):
    """Schema para actualizar producto (el stock se ajusta por /stock)"""
    codigo: Optional[str] = Field(None, min_length=1, max_length=50)
    nombre: Optional[str] = Field(None, min_length=2, max_length=100)
    descripcion: Optional[str] = Field(None, max_length=1000)
    precio: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    categoria: Optional[str] = Field(None, min_length=2, max_length=50)
    activo: Optional[bool] = None


class Producto(ProductoBase):
    """Schema para respuesta de producto"""
    id: int
    activo: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProductoList(BaseModel):
    productos: List[Producto]
    pagination: Pagination


class StockUpdate(BaseModel):
    """Ajuste de inventario"""
    cantidad: int = Field(..., ge=0)
    operacion: Literal["add", "subtract", "set"]

# ============================================================================
# PEDIDO SCHEMAS
# ============================================================================


class PedidoItem(BaseModel):
    producto_id: int = Field(..., gt=0)
    cantidad: int = Field(..., gt=0)


class PedidoCreate(BaseModel):
    """Schema para crear pedido (el precio se toma del producto)"""
    cliente_id: int = Field(..., gt=0)
    productos: List[PedidoItem] = Field(..., min_length=1)
    observaciones: Optional[str] = Field(None, max_length=1000)


class EstadoUpdate(BaseModel):
    estado: EstadoPedido


class DetallePedido(BaseModel):
    """Schema de línea de pedido"""
    id: int
    producto_id: int
    cantidad: int
    precio_unitario: Decimal
    subtotal: Decimal

    class Config:
        from_attributes = True


class Pedido(BaseModel):
    """Schema de respuesta de pedido con sus detalles"""
    id: int
    cliente_id: int
    usuario_id: int
    fecha: datetime
    total: Decimal
    estado: EstadoPedido
    observaciones: Optional[str] = None
    detalles: List[DetallePedido] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PedidoList(BaseModel):
    pedidos: List[Pedido]
    pagination: Pagination


class PedidoStatistics(BaseModel):
    total_pedidos: int
    pedidos_por_estado: Dict[str, int]
    ventas_totales: Decimal
    promedio_pedido: Decimal
    pedidos_ultimo_mes: int


class PedidoSummary(BaseModel):
    total_pedidos: int
    pedidos_hoy: int
    pedidos_esta_semana: int
    pedidos_este_mes: int
    ventas_totales: Decimal
    ventas_hoy: Decimal
    ventas_esta_semana: Decimal
    ventas_este_mes: Decimal

# ============================================================================
# ENCRYPTION SCHEMAS
# ============================================================================


class EncryptRequest(BaseModel):
    data: str = Field(..., min_length=1)
    public_key: Optional[str] = None  # si viene, se usa encriptación híbrida RSA


class DecryptRequest(BaseModel):
    encrypted_data: str = Field(..., min_length=1)
    private_key: Optional[str] = None


class EncryptResponse(BaseModel):
    encrypted_data: str
    hybrid: bool = False


class DecryptResponse(BaseModel):
    decrypted_data: str


class HashRequest(BaseModel):
    data: str


class HashResponse(BaseModel):
    hash: str
    algorithm: str = "sha256"


class KeyPair(BaseModel):
    public_key: str
    private_key: str


class EncryptedPedido(BaseModel):
    pedido_id: int
    encrypted_observaciones: Optional[str] = None
    encrypted_detalles: Optional[str] = None
    encrypted_metadata: Optional[str] = None


class DecryptedPedido(BaseModel):
    observaciones: Optional[str] = None
    detalles: Optional[List[Dict[str, Any]]] = None
    metadata: Optional[Dict[str, Any]] = None


class PedidoEncryptRequest(BaseModel):
    public_key: Optional[str] = None


class PedidoDecryptRequest(EncryptedPedido):
    private_key: Optional[str] = None


class RandomResponse(BaseModel):
    random: str
    length: int


class DecryptedData(BaseModel):
    data: Dict[str, Any]


class AuditLogRequest(BaseModel):
    operation: str = Field(..., min_length=1, max_length=50)
    pedido_id: int = Field(..., gt=0)
    extra: Optional[Dict[str, Any]] = None


class AuditLogResponse(BaseModel):
    audit_log: str
    generated_at: datetime


class IntegrityRequest(BaseModel):
    encrypted_data: str = Field(..., min_length=1)
    expected_hash: str = Field(..., min_length=64, max_length=64)


class IntegrityResponse(BaseModel):
    is_valid: bool
    verified_at: datetime

# ============================================================================
# ANALYTICS SCHEMAS
# ============================================================================


class GlobalSearch(BaseModel):
    usuarios: List[Usuario]
    productos: List[Producto]
    clientes: List[Cliente]
    total_resultados: int


class CategoriaValor(BaseModel):
    categoria: str
    cantidad: int
    valor: Decimal


class InventoryOverview(BaseModel):
    total_productos: int
    valor_total: Decimal
    productos_bajo_stock: List[Producto]
    categorias: Dict[str, int]
    top_categorias: List[CategoriaValor]


class CrecimientoDiario(BaseModel):
    fecha: str
    cantidad: int


class CustomerAnalytics(BaseModel):
    total_clientes: int
    clientes_activos: int
    distribucion_tipo_documento: Dict[str, int]
    clientes_recientes: List[Cliente]
    crecimiento: List[CrecimientoDiario]


class BusinessRulesReport(BaseModel):
    is_valid: bool
    errors: List[str]
    warnings: List[str]
