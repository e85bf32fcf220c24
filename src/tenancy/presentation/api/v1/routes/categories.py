from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from tenancy.infrastructure.persistence.models.category import Category
from tenancy.infrastructure.persistence.repositories.catalog_repo import CategoryRepository
from tenancy.presentation.api.dependencies import get_category_repo
from tenancy.presentation.api.v1.schemas.catalog import CategoryCreate, CategoryResponse

router = APIRouter()


@router.get("", response_model=list[CategoryResponse])
async def list_categories(
    repo: Annotated[CategoryRepository, Depends(get_category_repo)],
    locale: str | None = None,
):
    """Categories of the current tenant; deleted ones never show up"""
    return await repo.list_by_name(locale)


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    data: CategoryCreate,
    repo: Annotated[CategoryRepository, Depends(get_category_repo)],
):
    category = await repo.create(Category(name=data.name, locale=data.locale))
    await repo.ctx.save()
    return category


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: str,
    repo: Annotated[CategoryRepository, Depends(get_category_repo)],
):
    """Soft delete: the row stays, stamped with deleted_on/deleted_by"""
    category = await repo.get_by_id(category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    await repo.delete(category)
    await repo.ctx.save()
