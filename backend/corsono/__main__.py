"""Run the Corsono backend with uvicorn: ``python -m corsono``."""
import uvicorn

from corsono.config import get_config


def main() -> None:
    config = get_config()
    uvicorn.run(
        "corsono.main:app",
        host=config.server.host,
        port=config.server.port,
        reload=config.server.reload,
        log_level=config.logging.level.lower(),
    )


if __name__ == "__main__":
    main()
