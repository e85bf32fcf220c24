"""
Isolated tenant database provisioning.

Development: when the tenant database cannot be reached, connect to the
server's administrative database, CREATE DATABASE, then apply the schema.
Production: databases are pre-provisioned by infrastructure; only migrate.
"""

import logging

from sqlalchemy import text
from sqlalchemy.engine import make_url

from tenancy.domain.exceptions import DatabaseProvisioningException
from tenancy.infrastructure.config.settings import Settings, get_settings
from tenancy.infrastructure.persistence.context import TenantDataContext
from tenancy.infrastructure.persistence.database import (EngineRegistry, create_engine_for,
                                                         get_engine_registry)
from tenancy.shared.context import TenantScope

logger = logging.getLogger(__name__)


def derive_connection_string(default_url: str, tenant_id: str) -> str:
    """Default connection string with the database renamed to {default_db}-{tenant_id}"""
    url = make_url(default_url)
    return url.set(database=f"{url.database}-{tenant_id}").render_as_string(hide_password=False)


def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


class DatabaseProvisioner:
    """Creates (in development) and migrates a tenant's isolated database"""

    def __init__(self, settings: Settings | None = None, registry: EngineRegistry | None = None) -> None:
        self.settings = settings or get_settings()
        self.registry = registry or get_engine_registry()

    async def provision(self, tenant_id: str, connection_string: str) -> None:
        """
        Make the tenant database exist and carry the application schema.

        Raises:
            DatabaseProvisioningException: wrapping any underlying failure
        """
        database = make_url(connection_string).database
        ctx = TenantDataContext(
            TenantScope.system(tenant_id, connection_string), registry=self.registry
        )
        try:
            if self.settings.is_development:
                if not await ctx.can_connect():
                    logger.info(f"Creating database {database} for tenant {tenant_id}")
                    await self.create_database(connection_string)
                    logger.info(f"Database {database} created for tenant {tenant_id}")
            else:
                logger.info(f"Production database provisioning for tenant {tenant_id}; migrating only")

            logger.info(f"Applying application schema for tenant {tenant_id}")
            await ctx.migrate()
        except DatabaseProvisioningException:
            raise
        except Exception as e:
            logger.exception(f"Failed to provision database for tenant {tenant_id}")
            raise DatabaseProvisioningException(str(e), database) from e
        finally:
            await ctx.close()

    async def create_database(self, connection_string: str) -> None:
        """Issue CREATE DATABASE through the server's administrative database"""
        url = make_url(connection_string)
        if url.get_backend_name() == "sqlite":
            # SQLite creates the file on first connect
            return

        admin_url = url.set(database=self.settings.admin_database_name)
        engine = create_engine_for(admin_url.render_as_string(hide_password=False))
        try:
            async with engine.connect() as conn:
                conn = await conn.execution_options(isolation_level="AUTOCOMMIT")
                await conn.execute(text(f"CREATE DATABASE {quote_identifier(url.database or '')}"))
        finally:
            await engine.dispose()
