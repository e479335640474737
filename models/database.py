"""
Database Configuration Module

Sets up the async SQLAlchemy engine and session factory used by every agent.

Key Concepts:
1. ORM: Python classes map to tables (users, folders, categories, designs,
   design_privileges)
2. Async: all database access goes through AsyncSession
3. Session factory: agents open one session per operation and close it
   when the operation is done

SQLite (aiosqlite) is the default; setting DATABASE_URL switches to
PostgreSQL (asyncpg).
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy import select
import os
import logging

logger = logging.getLogger(__name__)

# Heroku-style postgres:// URLs need the asyncpg driver name
_database_url = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./learning_designs.db")

if _database_url.startswith("postgres://"):
    DATABASE_URL = _database_url.replace("postgres://", "postgresql+asyncpg://", 1)
elif _database_url.startswith("postgresql://"):
    DATABASE_URL = _database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
else:
    DATABASE_URL = _database_url

engine = create_async_engine(
    DATABASE_URL,
    echo=False,  # True logs every SQL statement
    future=True
)

# expire_on_commit=False keeps objects readable after commit
AsyncSessionLocal = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False
)

Base = declarative_base()


async def init_db():
    """
    Create all tables and seed the well-known "uncategorized" category.

    Idempotent: existing tables and the seeded row are left alone.
    """
    # Import all models so they're registered with Base
    from . import user, folder, category, design
    from core.content_tree import UNCATEGORIZED_CATEGORY_ID

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created successfully")

    async with AsyncSessionLocal() as session:
        result = await session.execute(
            select(category.Category).where(category.Category.id == UNCATEGORIZED_CATEGORY_ID)
        )
        if result.scalar_one_or_none() is None:
            session.add(category.Category(id=UNCATEGORIZED_CATEGORY_ID, name="Uncategorized"))
            await session.commit()
            logger.info("Seeded uncategorized category")


async def drop_db():
    """Drop every table (test teardown)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def get_session() -> AsyncSession:
    """
    Get a database session for use outside of FastAPI routes.

    Agents are not in a route context, so they manage the session
    themselves:

        session = await get_session()
        try:
            # do database operations
            await session.commit()
        finally:
            await session.close()
    """
    return AsyncSessionLocal()
