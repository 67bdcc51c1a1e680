from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from config import DATABASE_URL, SQL_ECHO
import models  # noqa: F401  registers the tables on SQLModel.metadata

engine = create_async_engine(DATABASE_URL, echo=SQL_ECHO)
async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

async def create_tables(bind=None):
    async with (bind or engine).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

async def get_db():
    async with async_session() as session:
        yield session
