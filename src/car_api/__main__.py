import uvicorn
from dotenv import load_dotenv

from car_api.config import Settings, configure_logging


def main() -> None:
    load_dotenv()
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    uvicorn.run("car_api.main:create_app", factory=True, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
