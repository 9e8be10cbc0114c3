# app/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI
import uvicorn

from app.api.routers import carts, checkout, health, orders, products
from app.data.database import Base, SessionLocal, engine
from app.tasks.sweeper import CartSweeper
from app.utils.logging import get_logger
from app.utils.settings import CART_SWEEP_IN_PROCESS

# IMPORT WSZYSTKICH MODELI PRZED CREATE_ALL
from app.data import models  # noqa: F401

logger = get_logger(__name__)


def init_db() -> None:
    logger.info(f"Models registered in Base.metadata: {list(Base.metadata.tables.keys())}")
    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        logger.error(f"Failed to create tables: {e}")
        raise
    logger.info("Database tables ready")


def create_app(sweep_in_process: bool = CART_SWEEP_IN_PROCESS) -> FastAPI:
    sweeper = CartSweeper(SessionLocal) if sweep_in_process else None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db()
        if sweeper:
            sweeper.start()
        try:
            yield
        finally:
            if sweeper:
                sweeper.stop()

    app = FastAPI(
        title="Shop Service",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.sweeper = sweeper

    # Include routers
    app.include_router(health.router)
    app.include_router(products.router)
    app.include_router(carts.router)
    app.include_router(checkout.router)
    app.include_router(orders.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
