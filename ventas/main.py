# ventas/main.py - API de ventas e inventario (FastAPI + SQLAlchemy Async + JWT)

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from . import config
from .auth import get_current_active_user, require_admin, require_admin_or_vendedor
from .constants import EstadoPedido, Rol, TipoDocumento
from .dao import DAOManager, DAOs, StockMode, build_daos
from .database import AsyncSessionLocal, create_tables, get_db
from .dependencies import (
    get_auth_service, get_dao_manager, get_daos, get_encryption_service,
    get_pedido_encryption_service, get_pedido_service
)
from .exceptions import NotFound, VentasError
from .logger import setup_logging
from .models import Usuario as UsuarioModel
from .schemas import (
    AuditLogRequest, AuditLogResponse, BusinessRulesReport, ChangePasswordRequest, Cliente,
    ClienteCreate, ClienteList, ClienteUpdate, CustomerAnalytics, DecryptedData, DecryptedPedido,
    DecryptRequest, DecryptResponse, EncryptedPedido, EncryptRequest, EncryptResponse, EstadoUpdate,
    GlobalSearch, HashRequest, HashResponse, IntegrityRequest, IntegrityResponse, InventoryOverview,
    KeyPair, LoginResponse, MessageResponse, Pedido, PedidoCreate, PedidoDecryptRequest,
    PedidoEncryptRequest, PedidoList, PedidoStatistics, PedidoSummary, Producto, ProductoCreate,
    ProductoList, ProductoUpdate, RandomResponse, RefreshRequest, RegisterRequest, StockUpdate,
    Token, TokenData, TokenVerifyRequest, Usuario, UsuarioCreate, UsuarioList, UsuarioUpdate
)
from .security import verify_token
from .seeds import run_seeds
from .services import AuthService, HybridEncryptionService, PedidoEncryptionService, PedidoService

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="API de Ventas e Inventario",
    version="1.0.0",
    description="Clientes, productos y pedidos con control de stock, JWT y roles"
)

# Una instancia de cada DAO y servicio para toda la aplicación
registro = build_daos()
hybrid_encryption = HybridEncryptionService(config.ENCRYPTION_KEY)
app.state.daos = registro
app.state.dao_manager = DAOManager(registro, low_stock_threshold=config.LOW_STOCK_THRESHOLD)
app.state.auth_service = AuthService(registro.usuarios)
app.state.pedido_service = PedidoService(
    registro.pedidos, registro.productos, registro.clientes, registro.usuarios,
    cancel_validates_transitions=config.CANCEL_VALIDATES_TRANSITIONS,
    recent_days=config.RECENT_DAYS,
)
app.state.encryption_service = hybrid_encryption
app.state.pedido_encryption_service = PedidoEncryptionService(hybrid_encryption)


# Startup: crear tablas y datos iniciales
@app.on_event("startup")
async def startup_event():
    await create_tables()
    logger.info("Tablas creadas/verificadas en la base de datos")
    if config.SEED_ON_STARTUP:
        async with AsyncSessionLocal() as db:
            await run_seeds(db, registro, demo=config.SEED_DEMO_DATA)


@app.exception_handler(VentasError)
async def ventas_error_handler(request: Request, exc: VentasError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": type(exc).__name__},
        headers=headers,
    )


# Dependencias comunes
def common_parameters(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None)
):
    return {"page": page, "limit": limit, "search": search}

# -------------------
# Endpoints públicos
# -------------------


@app.get("/")
def read_root():
    return {"message": "API de ventas funcionando", "docs": "/docs"}


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Health check falló: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Database error: {str(e)}"
        )
    return {"status": "healthy", "database": "connected"}

# -------------------
# Auth endpoints
# -------------------


@app.post("/auth/register", response_model=Usuario, status_code=status.HTTP_201_CREATED)
async def register_user(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service)
):
    return await auth_service.register(db, data.nombre, data.email, data.password)


@app.post("/auth/login", response_model=LoginResponse)
async def login_user(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service)
):
    return await auth_service.login(db, form_data.username, form_data.password)


@app.post("/auth/refresh", response_model=Token)
async def refresh_token(
    data: RefreshRequest,
    db: AsyncSession = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service)
):
    return await auth_service.refresh_access_token(db, data.refresh_token)


@app.post("/auth/verify", response_model=TokenData)
async def verify_access_token(data: TokenVerifyRequest):
    return verify_token(data.token)


@app.get("/auth/me", response_model=Usuario)
async def get_current_user_info(current_user: UsuarioModel = Depends(get_current_active_user)):
    return current_user


@app.put("/auth/change-password", response_model=MessageResponse)
async def change_password(
    data: ChangePasswordRequest,
    db: AsyncSession = Depends(get_db),
    current_user: UsuarioModel = Depends(get_current_active_user),
    auth_service: AuthService = Depends(get_auth_service)
):
    await auth_service.change_password(db, current_user.id, data.current_password, data.new_password)
    return MessageResponse(message="Password actualizado")

# -------------------
# Usuarios (solo admin)
# -------------------


@app.get("/usuarios/", response_model=UsuarioList)
async def get_usuarios(
    rol: Optional[Rol] = None,
    activo: Optional[bool] = None,
    commons: dict = Depends(common_parameters),
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin)
):
    page = await daos.usuarios.find_all(
        db, filters={"rol": rol, "activo": activo}, search=commons["search"],
        page=commons["page"], limit=commons["limit"]
    )
    return {"usuarios": page.items, "pagination": page.pagination()}


@app.get("/usuarios/statistics")
async def get_usuarios_statistics(
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin)
):
    return await daos.usuarios.get_statistics(db)


@app.get("/usuarios/{usuario_id}", response_model=Usuario)
async def get_usuario(
    usuario_id: int,
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin)
):
    return await daos.usuarios.get_or_404(db, usuario_id)


@app.post("/usuarios/", response_model=Usuario, status_code=status.HTTP_201_CREATED)
async def create_usuario(
    data: UsuarioCreate,
    db: AsyncSession = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
    current_user: UsuarioModel = Depends(require_admin)
):
    return await auth_service.register(db, data.nombre, data.email, data.password, data.rol, data.activo)


@app.put("/usuarios/{usuario_id}", response_model=Usuario)
async def update_usuario(
    usuario_id: int,
    data: UsuarioUpdate,
    db: AsyncSession = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
    current_user: UsuarioModel = Depends(require_admin)
):
    return await auth_service.update_user(db, usuario_id, data.model_dump(exclude_unset=True))


@app.delete("/usuarios/{usuario_id}", response_model=Usuario)
async def delete_usuario(
    usuario_id: int,
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin)
):
    return await daos.usuarios.delete(db, usuario_id)


@app.delete("/usuarios/{usuario_id}/permanent", response_model=MessageResponse)
async def hard_delete_usuario(
    usuario_id: int,
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin)
):
    await daos.usuarios.hard_delete(db, usuario_id)
    return MessageResponse(message=f"Usuario {usuario_id} eliminado")

# -------------------
# Clientes
# -------------------


@app.get("/clientes/", response_model=ClienteList)
async def get_clientes(
    tipo_documento: Optional[TipoDocumento] = None,
    activo: Optional[bool] = None,
    commons: dict = Depends(common_parameters),
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    page = await daos.clientes.find_all(
        db, filters={"tipo_documento": tipo_documento, "activo": activo}, search=commons["search"],
        page=commons["page"], limit=commons["limit"]
    )
    return {"clientes": page.items, "pagination": page.pagination()}


@app.get("/clientes/statistics")
async def get_clientes_statistics(
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin)
):
    return await daos.clientes.get_statistics(db)


@app.get("/clientes/recent", response_model=List[Cliente])
async def get_clientes_recientes(
    days: int = Query(config.RECENT_DAYS, ge=1, le=365),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    return await daos.clientes.find_recent(db, days=days, limit=limit)


@app.get("/clientes/documento/{documento}", response_model=Cliente)
async def get_cliente_by_documento(
    documento: str,
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    cliente = await daos.clientes.find_by_document(db, documento)
    if cliente is None:
        raise NotFound("Cliente not found")
    return cliente


@app.get("/clientes/tipo-documento/{tipo_documento}", response_model=List[Cliente])
async def get_clientes_by_tipo_documento(
    tipo_documento: TipoDocumento,
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    return await daos.clientes.find_by_document_type(db, tipo_documento)


@app.get("/clientes/{cliente_id}", response_model=Cliente)
async def get_cliente(
    cliente_id: int,
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    return await daos.clientes.get_or_404(db, cliente_id)


@app.post("/clientes/", response_model=Cliente, status_code=status.HTTP_201_CREATED)
async def create_cliente(
    cliente: ClienteCreate,
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    return await daos.clientes.create(db, cliente.model_dump())


@app.put("/clientes/{cliente_id}", response_model=Cliente)
async def update_cliente(
    cliente_id: int,
    cliente_update: ClienteUpdate,
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    return await daos.clientes.update(db, cliente_id, cliente_update.model_dump(exclude_unset=True))


@app.delete("/clientes/{cliente_id}", response_model=Cliente)
async def delete_cliente(
    cliente_id: int,
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    return await daos.clientes.delete(db, cliente_id)


@app.delete("/clientes/{cliente_id}/permanent", response_model=MessageResponse)
async def hard_delete_cliente(
    cliente_id: int,
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin)
):
    await daos.clientes.hard_delete(db, cliente_id)
    return MessageResponse(message=f"Cliente {cliente_id} eliminado")

# -------------------
# Productos
# -------------------


@app.get("/productos/", response_model=ProductoList)
async def get_productos(
    categoria: Optional[str] = None,
    activo: Optional[bool] = None,
    min_precio: Optional[Decimal] = Query(None, ge=0),
    max_precio: Optional[Decimal] = Query(None, ge=0),
    commons: dict = Depends(common_parameters),
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    page = await daos.productos.find_all_productos(
        db, categoria=categoria, activo=activo, search=commons["search"],
        min_precio=min_precio, max_precio=max_precio,
        page=commons["page"], limit=commons["limit"]
    )
    return {"productos": page.items, "pagination": page.pagination()}


@app.get("/productos/low-stock", response_model=List[Producto])
async def get_productos_bajo_stock(
    threshold: int = Query(config.LOW_STOCK_THRESHOLD, ge=0),
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    return await daos.productos.find_low_stock(db, threshold)


@app.get("/productos/categories", response_model=List[str])
async def get_categorias(
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    return await daos.productos.get_categories(db)


@app.get("/productos/statistics")
async def get_productos_statistics(
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin)
):
    return await daos.productos.get_statistics(db, config.LOW_STOCK_THRESHOLD)


@app.get("/productos/codigo/{codigo}", response_model=Producto)
async def get_producto_by_codigo(
    codigo: str,
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    producto = await daos.productos.find_by_code(db, codigo)
    if producto is None:
        raise NotFound("Producto not found")
    return producto


@app.get("/productos/categoria/{categoria}", response_model=List[Producto])
async def get_productos_by_categoria(
    categoria: str,
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    return await daos.productos.find_by_category(db, categoria)


@app.get("/productos/{producto_id}", response_model=Producto)
async def get_producto(
    producto_id: int,
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    return await daos.productos.get_or_404(db, producto_id)


@app.post("/productos/", response_model=Producto, status_code=status.HTTP_201_CREATED)
async def create_producto(
    producto: ProductoCreate,
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin)
):
    return await daos.productos.create(db, producto.model_dump())


@app.put("/productos/{producto_id}", response_model=Producto)
async def update_producto(
    producto_id: int,
    producto_update: ProductoUpdate,
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin)
):
    return await daos.productos.update(db, producto_id, producto_update.model_dump(exclude_unset=True))


@app.put("/productos/{producto_id}/stock", response_model=Producto)
async def update_producto_stock(
    producto_id: int,
    data: StockUpdate,
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    """add suma, subtract descuenta sin bajar de cero, set fija el valor"""
    await daos.productos.get_or_404(db, producto_id)
    if data.operacion != "set" and data.cantidad == 0:
        raise VentasError("La cantidad debe ser mayor que cero")

    if data.operacion == "add":
        await daos.productos.increase_stock(db, producto_id, data.cantidad, commit=True)
    elif data.operacion == "subtract":
        await daos.productos.reduce_stock(db, producto_id, data.cantidad, StockMode.CLAMP, commit=True)
    else:
        await daos.productos.set_stock(db, producto_id, data.cantidad, commit=True)
    return await daos.productos.find_by_id(db, producto_id)


@app.delete("/productos/{producto_id}", response_model=Producto)
async def delete_producto(
    producto_id: int,
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin)
):
    return await daos.productos.delete(db, producto_id)


@app.delete("/productos/{producto_id}/permanent", response_model=MessageResponse)
async def hard_delete_producto(
    producto_id: int,
    db: AsyncSession = Depends(get_db),
    daos: DAOs = Depends(get_daos),
    current_user: UsuarioModel = Depends(require_admin)
):
    await daos.productos.hard_delete(db, producto_id)
    return MessageResponse(message=f"Producto {producto_id} eliminado")

# -------------------
# Pedidos
# -------------------


@app.post("/pedidos/", response_model=Pedido, status_code=status.HTTP_201_CREATED)
async def create_pedido(
    pedido: PedidoCreate,
    db: AsyncSession = Depends(get_db),
    pedido_service: PedidoService = Depends(get_pedido_service),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    return await pedido_service.create_pedido(
        db, pedido.cliente_id, pedido.productos, current_user.id, pedido.observaciones
    )


@app.get("/pedidos/", response_model=PedidoList)
async def get_pedidos(
    cliente_id: Optional[int] = None,
    usuario_id: Optional[int] = None,
    producto_id: Optional[int] = None,
    estado: Optional[EstadoPedido] = None,
    fecha_inicio: Optional[datetime] = None,
    fecha_fin: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    pedido_service: PedidoService = Depends(get_pedido_service),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    result = await pedido_service.list_pedidos(
        db, cliente_id=cliente_id, usuario_id=usuario_id, producto_id=producto_id, estado=estado,
        fecha_inicio=fecha_inicio, fecha_fin=fecha_fin, page=page, limit=limit
    )
    return {"pedidos": result.items, "pagination": result.pagination()}


@app.get("/pedidos/statistics", response_model=PedidoStatistics)
async def get_pedidos_statistics(
    db: AsyncSession = Depends(get_db),
    pedido_service: PedidoService = Depends(get_pedido_service),
    current_user: UsuarioModel = Depends(require_admin)
):
    return await pedido_service.get_statistics(db)


@app.get("/pedidos/summary", response_model=PedidoSummary)
async def get_pedidos_summary(
    db: AsyncSession = Depends(get_db),
    pedido_service: PedidoService = Depends(get_pedido_service),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    return await pedido_service.get_summary(db)


@app.get("/pedidos/recent", response_model=List[Pedido])
async def get_pedidos_recientes(
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    pedido_service: PedidoService = Depends(get_pedido_service),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    return await pedido_service.get_recent_pedidos(db, limit)


@app.get("/pedidos/date-range", response_model=List[Pedido])
async def get_pedidos_by_date_range(
    fecha_inicio: datetime,
    fecha_fin: datetime,
    db: AsyncSession = Depends(get_db),
    pedido_service: PedidoService = Depends(get_pedido_service),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    return await pedido_service.get_pedidos_by_date_range(db, fecha_inicio, fecha_fin)


@app.get("/pedidos/estado/{estado}", response_model=PedidoList)
async def get_pedidos_by_estado(
    estado: EstadoPedido,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    pedido_service: PedidoService = Depends(get_pedido_service),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    result = await pedido_service.get_pedidos_by_estado(db, estado, page, limit)
    return {"pedidos": result.items, "pagination": result.pagination()}


@app.get("/pedidos/cliente/{cliente_id}", response_model=List[Pedido])
async def get_pedidos_by_cliente(
    cliente_id: int,
    db: AsyncSession = Depends(get_db),
    pedido_service: PedidoService = Depends(get_pedido_service),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    return await pedido_service.get_pedidos_by_cliente(db, cliente_id)


@app.get("/pedidos/producto/{producto_id}", response_model=List[Pedido])
async def get_pedidos_by_producto(
    producto_id: int,
    db: AsyncSession = Depends(get_db),
    pedido_service: PedidoService = Depends(get_pedido_service),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    return await pedido_service.get_pedidos_by_producto(db, producto_id)


@app.post("/pedidos/decrypt", response_model=DecryptedPedido)
async def decrypt_pedido(
    data: PedidoDecryptRequest,
    pedido_encryption: PedidoEncryptionService = Depends(get_pedido_encryption_service),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    return pedido_encryption.decrypt_pedido_data(data.model_dump(), data.private_key)


@app.post("/pedidos/creation/encrypt", response_model=EncryptResponse)
async def encrypt_pedido_creation(
    data: PedidoCreate,
    pedido_encryption: PedidoEncryptionService = Depends(get_pedido_encryption_service),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    token = pedido_encryption.encrypt_pedido_creation(data.model_dump(), current_user.id)
    return EncryptResponse(encrypted_data=token)


@app.post("/pedidos/creation/decrypt", response_model=DecryptedData)
async def decrypt_pedido_creation(
    data: DecryptRequest,
    pedido_encryption: PedidoEncryptionService = Depends(get_pedido_encryption_service),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    return DecryptedData(data=pedido_encryption.decrypt_pedido_creation(data.encrypted_data))


@app.post("/pedidos/statistics/encrypt", response_model=EncryptResponse)
async def encrypt_pedidos_statistics(
    db: AsyncSession = Depends(get_db),
    pedido_service: PedidoService = Depends(get_pedido_service),
    pedido_encryption: PedidoEncryptionService = Depends(get_pedido_encryption_service),
    current_user: UsuarioModel = Depends(require_admin)
):
    stats = await pedido_service.get_statistics(db)
    return EncryptResponse(encrypted_data=pedido_encryption.encrypt_statistics(stats, current_user.id))


@app.post("/pedidos/statistics/decrypt", response_model=DecryptedData)
async def decrypt_pedidos_statistics(
    data: DecryptRequest,
    pedido_encryption: PedidoEncryptionService = Depends(get_pedido_encryption_service),
    current_user: UsuarioModel = Depends(require_admin)
):
    return DecryptedData(data=pedido_encryption.decrypt_statistics(data.encrypted_data))


@app.post("/pedidos/audit-log", response_model=AuditLogResponse)
async def generate_pedido_audit_log(
    data: AuditLogRequest,
    db: AsyncSession = Depends(get_db),
    pedido_service: PedidoService = Depends(get_pedido_service),
    pedido_encryption: PedidoEncryptionService = Depends(get_pedido_encryption_service),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    await pedido_service.get_pedido(db, data.pedido_id)
    audit_log = pedido_encryption.generate_audit_log(data.operation, data.pedido_id, current_user.id, data.extra)
    return AuditLogResponse(audit_log=audit_log, generated_at=datetime.now(timezone.utc))


@app.post("/pedidos/verify-integrity", response_model=IntegrityResponse)
async def verify_pedido_integrity(
    data: IntegrityRequest,
    pedido_encryption: PedidoEncryptionService = Depends(get_pedido_encryption_service),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    is_valid = pedido_encryption.verify_integrity(data.encrypted_data, data.expected_hash)
    return IntegrityResponse(is_valid=is_valid, verified_at=datetime.now(timezone.utc))


@app.get("/pedidos/{pedido_id}", response_model=Pedido)
async def get_pedido(
    pedido_id: int,
    db: AsyncSession = Depends(get_db),
    pedido_service: PedidoService = Depends(get_pedido_service),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    return await pedido_service.get_pedido(db, pedido_id)


@app.put("/pedidos/{pedido_id}/estado", response_model=Pedido)
async def update_pedido_estado(
    pedido_id: int,
    data: EstadoUpdate,
    db: AsyncSession = Depends(get_db),
    pedido_service: PedidoService = Depends(get_pedido_service),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    return await pedido_service.update_estado(db, pedido_id, data.estado)


@app.put("/pedidos/{pedido_id}/cancel", response_model=Pedido)
async def cancel_pedido(
    pedido_id: int,
    db: AsyncSession = Depends(get_db),
    pedido_service: PedidoService = Depends(get_pedido_service),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    return await pedido_service.cancel_pedido(db, pedido_id)


@app.post("/pedidos/{pedido_id}/encrypt", response_model=EncryptedPedido)
async def encrypt_pedido(
    pedido_id: int,
    data: Optional[PedidoEncryptRequest] = None,
    db: AsyncSession = Depends(get_db),
    pedido_service: PedidoService = Depends(get_pedido_service),
    pedido_encryption: PedidoEncryptionService = Depends(get_pedido_encryption_service),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    pedido = await pedido_service.get_pedido(db, pedido_id)
    return pedido_encryption.encrypt_pedido_data(pedido, data.public_key if data else None)


@app.delete("/pedidos/{pedido_id}", response_model=MessageResponse)
async def delete_pedido(
    pedido_id: int,
    db: AsyncSession = Depends(get_db),
    pedido_service: PedidoService = Depends(get_pedido_service),
    current_user: UsuarioModel = Depends(require_admin)
):
    await pedido_service.delete_pedido(db, pedido_id)
    return MessageResponse(message=f"Pedido {pedido_id} eliminado")

# -------------------
# Encriptación
# -------------------


@app.post("/encryption/keypair", response_model=KeyPair)
async def generate_keypair(
    encryption: HybridEncryptionService = Depends(get_encryption_service),
    current_user: UsuarioModel = Depends(require_admin)
):
    return encryption.generate_rsa_key_pair()


@app.post("/encryption/encrypt", response_model=EncryptResponse)
async def encrypt_data(
    data: EncryptRequest,
    encryption: HybridEncryptionService = Depends(get_encryption_service),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    if data.public_key:
        return EncryptResponse(encrypted_data=encryption.hybrid_encrypt(data.data, data.public_key), hybrid=True)
    return EncryptResponse(encrypted_data=encryption.encrypt(data.data))


@app.post("/encryption/decrypt", response_model=DecryptResponse)
async def decrypt_data(
    data: DecryptRequest,
    encryption: HybridEncryptionService = Depends(get_encryption_service),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    if data.private_key:
        return DecryptResponse(decrypted_data=encryption.hybrid_decrypt(data.encrypted_data, data.private_key))
    return DecryptResponse(decrypted_data=encryption.decrypt(data.encrypted_data))


@app.post("/encryption/hash", response_model=HashResponse)
async def hash_data(
    data: HashRequest,
    encryption: HybridEncryptionService = Depends(get_encryption_service),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    return HashResponse(hash=encryption.hash_data(data.data))


@app.get("/encryption/random", response_model=RandomResponse)
async def generate_random(
    length: int = Query(32, ge=1, le=256),
    encryption: HybridEncryptionService = Depends(get_encryption_service),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    return RandomResponse(random=encryption.generate_secure_random(length), length=length)

# -------------------
# Analytics
# -------------------


@app.get("/analytics/dashboard")
async def get_dashboard(
    db: AsyncSession = Depends(get_db),
    manager: DAOManager = Depends(get_dao_manager),
    current_user: UsuarioModel = Depends(require_admin)
):
    return await manager.get_dashboard_statistics(db)


@app.get("/analytics/search", response_model=GlobalSearch)
async def global_search(
    q: str = Query(..., min_length=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    manager: DAOManager = Depends(get_dao_manager),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    return await manager.global_search(db, q, limit)


@app.get("/analytics/inventory", response_model=InventoryOverview)
async def get_inventory(
    db: AsyncSession = Depends(get_db),
    manager: DAOManager = Depends(get_dao_manager),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    return await manager.get_inventory_overview(db)


@app.get("/analytics/customers", response_model=CustomerAnalytics)
async def get_customer_analytics(
    days: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
    manager: DAOManager = Depends(get_dao_manager),
    current_user: UsuarioModel = Depends(require_admin_or_vendedor)
):
    return await manager.get_customer_analytics(db, days)


@app.get("/analytics/validate", response_model=BusinessRulesReport)
async def validate_business_rules(
    db: AsyncSession = Depends(get_db),
    manager: DAOManager = Depends(get_dao_manager),
    current_user: UsuarioModel = Depends(require_admin)
):
    return await manager.validate_business_rules(db)

# Para ejecutar: uvicorn ventas.main:app --reload
