from sqlalchemy import select

from tenancy.infrastructure.persistence.context import TenantDataContext
from tenancy.infrastructure.persistence.models.category import Category
from tenancy.infrastructure.persistence.models.product import Product
from tenancy.infrastructure.persistence.repositories.base import BaseRepository


class ProductRepository(BaseRepository[Product]):
    """Products of the scope's tenant"""

    def __init__(self, ctx: TenantDataContext):
        super().__init__(ctx, Product)

    async def get_by_name(self, name: str) -> Product | None:
        result = await self.ctx.execute(select(Product).where(Product.name == name))
        return result.scalar_one_or_none()

    async def list_by_name(self) -> list[Product]:
        result = await self.ctx.execute(select(Product).order_by(Product.name))
        return list(result.scalars().all())


class CategoryRepository(BaseRepository[Category]):
    """Categories of the scope's tenant; deleted ones are filtered out"""

    def __init__(self, ctx: TenantDataContext):
        super().__init__(ctx, Category)

    async def list_by_name(self, locale: str | None = None) -> list[Category]:
        stmt = select(Category).order_by(Category.name)
        if locale:
            stmt = stmt.where(Category.locale == locale)
        result = await self.ctx.execute(stmt)
        return list(result.scalars().all())
