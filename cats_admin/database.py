"""
Database Connection and Transaction Management
Uses PostgreSQL with asyncpg
"""

import logging
from contextlib import asynccontextmanager
from databases import Database
from sqlalchemy import create_engine, MetaData
from sqlalchemy.orm import declarative_base
from cats_admin.config import settings

logger = logging.getLogger(__name__)

# Database URL
DATABASE_URL = settings.DATABASE_URL

# For Supabase connection pooler (pgbouncer), disable prepared statements
if "supabase.com" in DATABASE_URL or "pooler.supabase.com" in DATABASE_URL:
    db_options = {"min_size": 1, "max_size": 5, "statement_cache_size": 0}
else:
    db_options = {"min_size": 1, "max_size": 10}

# Create database instance for async queries
database = Database(DATABASE_URL, **db_options)

# Create SQLAlchemy engine for migrations
engine = create_engine(
    DATABASE_URL.replace("postgresql://", "postgresql+psycopg2://")
    if "postgresql://" in DATABASE_URL else DATABASE_URL
)

# Metadata for models
metadata = MetaData()

# Base class for models
Base = declarative_base(metadata=metadata)


# Dependency to get database connection
async def get_database():
    """Get database connection"""
    return database


@asynccontextmanager
async def actor_transaction(actor_address: str):
    """
    Open a transaction attributed to an admin wallet

    The audit trigger reads `app.actor_address`; set_config with
    is_local=true scopes it to this transaction, so a pooled connection
    never carries one request's actor into the next. Any exception
    raised inside the block rolls the whole transaction back.

    Args:
        actor_address: Wallet address of the admin making the change

    Yields:
        The database handle to run statements on
    """
    async with database.transaction():
        await database.execute(
            "SELECT set_config('app.actor_address', :actor, true)",
            {"actor": actor_address}
        )
        yield database


async def connect_db():
    """Connect to database on startup"""
    await database.connect()
    logger.info("[OK] Database connected")


async def disconnect_db():
    """Disconnect from database on shutdown"""
    await database.disconnect()
    logger.info("[OK] Database disconnected")
