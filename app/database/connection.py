import motor.motor_asyncio
from beanie import init_beanie
from app.database.models import DOCUMENT_MODELS
from app.core import Settings
import logging
import re

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Never log full connection URIs which may contain credentials
def _mask_mongo_uri(uri: str) -> str:
    m = re.match(r'(?P<prefix>mongodb(?:\+srv)?://)(?:(?P<creds>[^@]+)@)?(?P<rest>.+)', uri or "")
    if not m:
        return "mongodb://<redacted>"
    host_part = m.group('rest').split('/')[0]
    return f"{m.group('prefix')}***@{host_part}"


async def init_db():
    mongodb_uri = Settings.MONGODB_URI
    mongodb_db_name = Settings.MONGODB_DB_NAME

    if not mongodb_uri:
        logger.error("MONGODB_URI is not set in environment variables")
        raise RuntimeError("Configuration error: MONGODB_URI is not set in environment variables")
    if not mongodb_db_name:
        logger.error("MONGODB_DB_NAME is not set in environment variables")
        raise RuntimeError("Configuration error: MONGODB_DB_NAME is not set in environment variables")

    logger.info(f"Attempting to connect to MongoDB at: {_mask_mongo_uri(mongodb_uri)}")
    logger.info("Database name: %s", mongodb_db_name)

    try:
        client = motor.motor_asyncio.AsyncIOMotorClient(
            mongodb_uri,
            serverSelectionTimeoutMS=30000,
            connectTimeoutMS=30000,
            socketTimeoutMS=30000,
            retryWrites=True,
        )

        logger.info("Testing MongoDB connection...")
        await client.admin.command('ping')
        logger.info("Successfully connected to MongoDB!")

        database = client[mongodb_db_name]

        logger.info("Initializing Beanie with document models...")
        await init_beanie(database, document_models=DOCUMENT_MODELS)
        logger.info("Beanie initialized successfully!")

        return database

    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")
        logger.error(f"Exception type: {type(e)}")
        raise
