"""
MongoDB Database Configuration and Connection
"""

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.server_api import ServerApi

from tourship.core.config import DATABASE_NAME, MONGODB_URI

# Global database client
_client = None
_database = None


def get_database():
    """
    Get MongoDB database instance
    Creates a new connection if one doesn't exist
    """
    global _client, _database

    if _database is None:
        if not MONGODB_URI:
            raise ValueError("MONGODB_URI environment variable is not set")

        # Create MongoDB client with server API version
        _client = AsyncIOMotorClient(MONGODB_URI, server_api=ServerApi("1"))
        _database = _client[DATABASE_NAME]

        print(f"✅ Connected to MongoDB database: {DATABASE_NAME}")

    return _database


async def init_indexes():
    """
    Initialize database indexes for uniqueness and query performance
    """
    try:
        users_collection = get_users_collection()
        attractions_collection = get_attractions_collection()
        trips_collection = get_trips_collection()

        # Users indexes
        await users_collection.create_index("email", unique=True)
        await users_collection.create_index("phone")
        await users_collection.create_index("role")
        await users_collection.create_index("guideProfile.isVerified")
        await users_collection.create_index("organiserProfile.isVerified")

        # Attractions indexes
        await attractions_collection.create_index("slug", unique=True)
        await attractions_collection.create_index("location.city")
        await attractions_collection.create_index("category")
        await attractions_collection.create_index([("analytics.popularityScore", -1)])
        await attractions_collection.create_index([("isActive", 1), ("status", 1)])

        # Trips indexes
        await trips_collection.create_index("slug", unique=True)
        await trips_collection.create_index("organiser")
        await trips_collection.create_index("guide")
        await trips_collection.create_index("attraction")
        await trips_collection.create_index("status")
        await trips_collection.create_index("startDate")
        await trips_collection.create_index("bookings.user")

        print("✅ Database indexes created successfully")
    except Exception as e:
        print(f"⚠️  Index creation warning: {e}")


async def close_database_connection():
    """
    Close the MongoDB connection
    Call this when shutting down the application
    """
    global _client, _database

    if _client:
        _client.close()
        _client = None
        _database = None
        print("🔌 Closed MongoDB connection")


async def test_connection():
    """
    Test the MongoDB connection
    """
    try:
        db = get_database()
        await db.command("ping")
        print("✅ MongoDB connection successful!")
        return True
    except Exception as e:
        print(f"❌ MongoDB connection failed: {e}")
        return False


def get_users_collection():
    """
    Get the users collection from the database
    """
    db = get_database()
    return db.users


def get_attractions_collection():
    """
    Get the attractions collection from the database
    """
    db = get_database()
    return db.attractions


def get_trips_collection():
    """
    Get the trips collection from the database
    """
    db = get_database()
    return db.trips
