"""
Create the MongoDB indexes Dareon relies on.
Run this once per database (the app also ensures them on startup).
"""
import asyncio

from dareon.db.mongo_client import close_mongo, connect_to_mongo, initialize_indexes


async def add_indexes():
    print("⚡ Adding indexes to MongoDB...")
    await connect_to_mongo()
    try:
        await initialize_indexes()
        print("🚀 Indexes ready")
    finally:
        await close_mongo()


if __name__ == "__main__":
    asyncio.run(add_indexes())
