# app/services/product_service.py
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from app.data.models.product import ProductModel
from app.domain.errors import NotFoundError
from app.domain.schemas import ProductIn, ProductUpdate
from app.repos.product_repo import ProductRepo
from app.utils.logging import get_logger

logger = get_logger(__name__)


def product_to_dict(product: ProductModel) -> Dict[str, Any]:
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description or "",
        "price": product.price,
        "category": product.category,
        "stock": product.stock,
        "images": list(product.images or []),
    }


class ProductService:
    """Prosty katalog, tylko tyle ile potrzebuje magazyn i koszyk."""

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)

    def list_products(self, category: str | None = None, search: str | None = None) -> List[Dict[str, Any]]:
        return [product_to_dict(p) for p in self.repo.list_products(category, search)]

    def get_product(self, product_id: int) -> Dict[str, Any]:
        product = self.repo.get_product(product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product_to_dict(product)

    def create_product(self, payload: ProductIn) -> Dict[str, Any]:
        created = self.repo.create_product(ProductModel(**payload.model_dump()))
        logger.info(f"Created product {created.id} ({created.name}) with stock {created.stock}")
        return product_to_dict(created)

    def update_product(self, product_id: int, payload: ProductUpdate) -> Dict[str, Any]:
        product = self.repo.get_product(product_id)
        if not product:
            raise NotFoundError("Product not found")
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        updated = self.repo.update_product(product, changes)
        logger.info(f"Updated product {product_id}: {sorted(changes)}")
        return product_to_dict(updated)

    def delete_product(self, product_id: int) -> Dict[str, bool]:
        product = self.repo.get_product(product_id)
        if not product:
            raise NotFoundError("Product not found")
        self.repo.delete_product(product)
        logger.info(f"Deleted product {product_id}")
        return {"deleted": True}
