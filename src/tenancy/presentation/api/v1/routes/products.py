from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError

from tenancy.infrastructure.persistence.models.product import Product
from tenancy.infrastructure.persistence.repositories.catalog_repo import ProductRepository
from tenancy.presentation.api.dependencies import get_product_repo
from tenancy.presentation.api.v1.schemas.catalog import (ProductCreate, ProductResponse,
                                                        ProductUpdate)

router = APIRouter()


@router.get("", response_model=list[ProductResponse])
async def list_products(repo: Annotated[ProductRepository, Depends(get_product_repo)]):
    """Products of the current tenant, by name"""
    return await repo.list_by_name()


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    data: ProductCreate,
    repo: Annotated[ProductRepository, Depends(get_product_repo)],
):
    if await repo.get_by_name(data.name) is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Product '{data.name}' already exists",
        )

    product = await repo.create(Product(name=data.name, description=data.description))
    try:
        await repo.ctx.save()
    except IntegrityError as e:
        await repo.ctx.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Product '{data.name}' already exists",
        ) from e
    return product


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: str,
    data: ProductUpdate,
    repo: Annotated[ProductRepository, Depends(get_product_repo)],
):
    product = await repo.get_by_id(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    if data.name is not None:
        product.name = data.name
    if data.description is not None:
        product.description = data.description

    try:
        await repo.ctx.save()
    except IntegrityError as e:
        await repo.ctx.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Product '{data.name}' already exists",
        ) from e
    return product


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: str,
    repo: Annotated[ProductRepository, Depends(get_product_repo)],
):
    """Products are removed physically"""
    product = await repo.get_by_id(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    await repo.delete(product)
    await repo.ctx.save()
