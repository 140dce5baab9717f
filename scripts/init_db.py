import logging

from dotenv import load_dotenv

from car_api.config import Settings, configure_logging
from car_api.db import Database
from car_api.schema import init_schema

logger = logging.getLogger(__name__)


def main() -> None:
    load_dotenv()
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    database = Database.from_settings(settings)
    try:
        init_schema(database)
    finally:
        database.close()
    logger.info("Database schema initialized")


if __name__ == "__main__":
    main()
