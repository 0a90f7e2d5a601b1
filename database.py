import os
from sqlmodel import SQLModel
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from dotenv import load_dotenv

load_dotenv()

# postgresql+asyncpg://... in production, sqlite+aiosqlite:///./laundry.db locally.
# Both backends honour the partial active-slot index in models.py; a backend
# without partial indexes would block re-booking of cancelled slots.
DATABASE_URL = os.environ.get("DATABASE_URL")

if not DATABASE_URL:
    raise ValueError("DATABASE_URL is not set. Please check your .env file.")

DATABASE_ECHO = os.environ.get("DATABASE_ECHO", "false").lower() in ("1", "true", "yes", "on")

engine = create_async_engine(DATABASE_URL, echo=DATABASE_ECHO, future=True)

# Objects stay readable after commit; the ledger returns them to callers
async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(bind=engine):
    """Create the bookings table and its active-slot index if missing."""
    async with bind.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_session() -> AsyncSession:
    async with async_session() as session:
        yield session
