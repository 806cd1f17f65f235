from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from app.core.config import settings
from app.core.errors import register_exception_handlers
from app.core.logger import configure_logging
from app.db.session import create_db_and_tables
from app.routers import admin, auth, cart, orders, products, seller_orders, sellers, upload

configure_logging()

@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    yield

app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    lifespan=lifespan,
    description="API for the campus marketplace: seller shops, cart, split checkout and GCash verification"
)

register_exception_handlers(app)

@app.get("/")
def read_root():
    return {"message": f"Welcome to {settings.PROJECT_NAME}. Visit /docs for Swagger UI."}

app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(sellers.router, prefix="/api/sellers", tags=["sellers"])
app.include_router(products.router, prefix="/api/products", tags=["products"])
app.include_router(cart.router, prefix="/api/cart", tags=["cart"])
app.include_router(orders.router, prefix="/api/orders", tags=["orders"])
app.include_router(seller_orders.router, prefix="/api/seller/orders", tags=["seller orders"])
app.include_router(admin.router, prefix="/api/admin", tags=["admin"])
app.include_router(upload.router, prefix="/api/upload", tags=["upload"])

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
