import asyncio
import logging

from database import create_tables

logging.basicConfig(level=logging.INFO)


async def init_database():
    # Create all tables if they don't exist
    await create_tables()
    print("Database schema ensured.")


async def main():
    await init_database()

if __name__ == "__main__":
    asyncio.run(main())
