import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlmodel import Session, select

from database import get_session
from models import Customer, Product, User
from schemas.product_schema import ProductCreateSchema, ProductReadSchema, ProductUpdateSchema
from security.oauth2 import get_current_user
from security.permissions import require_capability
from utils import add_pricing
from core.pricing import default_contractor_price
from core.roles import Capability

logger = logging.getLogger(__name__)

office_or_admin = require_capability(Capability.MANAGE_PRODUCTS, "Office or admin role required")

router = APIRouter(
    prefix="/products",
    tags=["Product"],
    dependencies=[Depends(get_current_user)]
)


def _get_product_or_404(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


def _name_taken(db: Session, name: str, exclude_id: int = None) -> bool:
    stmt = select(Product.id).where(Product.name == name)
    if exclude_id is not None:
        stmt = stmt.where(Product.id != exclude_id)
    return db.exec(stmt).first() is not None


@router.get("", response_model=list[ProductReadSchema], status_code=status.HTTP_200_OK)
def get_products(db: Session = Depends(get_session)):
    try:
        products = db.exec(select(Product).order_by(Product.active.desc(), Product.name.asc())).all()
        return [add_pricing(p) for p in products]
    except Exception as e:
        logger.exception("Failed to fetch products")
        raise HTTPException(status_code=500, detail=f"Failed to fetch products: {str(e)}")


@router.get("/active", response_model=list[ProductReadSchema], status_code=status.HTTP_200_OK)
def get_active_products(db: Session = Depends(get_session)):
    try:
        products = db.exec(select(Product).where(Product.active == True).order_by(Product.name.asc())).all()  # noqa: E712
        return [add_pricing(p) for p in products]
    except Exception as e:
        logger.exception("Failed to fetch active products")
        raise HTTPException(status_code=500, detail=f"Failed to fetch active products: {str(e)}")


# -------------------------------
# Active products priced for one customer
# -------------------------------
@router.get("/pricing/{customer_id}", response_model=list[ProductReadSchema], status_code=status.HTTP_200_OK)
def get_customer_pricing(
    customer_id: int = Path(...),
    db: Session = Depends(get_session),
):
    customer = db.get(Customer, customer_id)
    # unknown customers get retail pricing
    contractor = bool(customer and customer.contractor)
    if customer is None:
        logger.info("Pricing requested for unknown customer %s, using retail", customer_id)

    try:
        products = db.exec(select(Product).where(Product.active == True).order_by(Product.name.asc())).all()  # noqa: E712
        return [add_pricing(p, contractor=contractor) for p in products]
    except Exception as e:
        logger.exception("Failed to price products for customer %s", customer_id)
        raise HTTPException(status_code=500, detail=f"Failed to get product pricing: {str(e)}")


@router.get("/{product_id}", response_model=ProductReadSchema, status_code=status.HTTP_200_OK)
def get_product(
    product_id: int = Path(...),
    db: Session = Depends(get_session),
):
    return add_pricing(_get_product_or_404(db, product_id))


@router.post("", response_model=ProductReadSchema, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreateSchema,
    db: Session = Depends(get_session),
    current_user: User = Depends(office_or_admin),
):
    if _name_taken(db, payload.name):
        raise HTTPException(status_code=400, detail="Product with this name already exists")

    try:
        contractor_price = payload.contractor_price
        if contractor_price is None:
            contractor_price = default_contractor_price(payload.retail_price)

        product = Product(
            name=payload.name,
            unit=payload.unit,
            retail_price=payload.retail_price,
            contractor_price=contractor_price,
            active=payload.active,
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        logger.info("Product %s created by %s", product.id, current_user.id)
        return add_pricing(product)

    except Exception as e:
        db.rollback()
        logger.exception("Failed to create product %r", payload.name)
        raise HTTPException(status_code=500, detail=f"Failed to create product: {str(e)}")


@router.put("/{product_id}", response_model=ProductReadSchema, status_code=status.HTTP_200_OK)
def update_product(
    payload: ProductUpdateSchema,
    product_id: int = Path(...),
    db: Session = Depends(get_session),
    current_user: User = Depends(office_or_admin),
):
    try:
        product = _get_product_or_404(db, product_id)

        update_data = payload.model_dump(exclude_unset=True)
        if not update_data:
            raise HTTPException(status_code=400, detail="No valid fields to update")
        for required in ("name", "unit", "active"):
            if required in update_data and update_data[required] is None:
                raise HTTPException(status_code=400, detail=f"{required} cannot be empty")
        if "name" in update_data and _name_taken(db, update_data["name"], exclude_id=product_id):
            raise HTTPException(status_code=400, detail="Product with this name already exists")

        for key, value in update_data.items():
            setattr(product, key, value)
        product.updated_at = datetime.now(timezone.utc)

        db.add(product)
        db.commit()
        db.refresh(product)
        logger.info("Product %s updated by %s", product_id, current_user.id)
        return add_pricing(product)

    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.exception("Failed to update product %s", product_id)
        raise HTTPException(status_code=500, detail=f"Failed to update product: {str(e)}")


@router.delete("/{product_id}", status_code=status.HTTP_200_OK)
def delete_product(
    product_id: int = Path(...),
    db: Session = Depends(get_session),
    current_user: User = Depends(office_or_admin),
):
    product = _get_product_or_404(db, product_id)
    try:
        db.delete(product)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.exception("Failed to delete product %s", product_id)
        raise HTTPException(status_code=500, detail=f"Failed to delete product: {str(e)}")

    logger.info("Product %s deleted by %s", product_id, current_user.id)
    return {"message": "Product deleted successfully"}
