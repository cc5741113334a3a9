import asyncio
from datetime import datetime, timezone
from motor.motor_asyncio import AsyncIOMotorClient

from app.core.config import get_settings
from app.core.utils import generate_slug
from app.db.mongodb import ensure_indexes

settings = get_settings()

DEFAULT_CATEGORIES = [
    ("Technology", "Software, hardware and everything in between"),
    ("Lifestyle", "Everyday life, habits and hobbies"),
    ("Travel", "Places, routes and notes from the road"),
]


async def init_db():
    client = AsyncIOMotorClient(settings.MONGODB_URL)
    db = client[settings.MONGODB_DB_NAME]

    print("Creating indexes...")

    await ensure_indexes(db)

    print("Creating default categories...")

    for name, description in DEFAULT_CATEGORIES:
        # Проверка существования категории
        if await db.categories.find_one({"name": name}):
            print(f"Category '{name}' already exists")
            continue

        now = datetime.now(timezone.utc)
        result = await db.categories.insert_one({
            "name": name,
            "description": description,
            "slug": generate_slug(name),
            "created_at": now,
            "updated_at": now
        })
        print(f"Category '{name}' created with ID: {result.inserted_id}")

    print("Database initialization completed")

    client.close()


if __name__ == "__main__":
    asyncio.run(init_db())
