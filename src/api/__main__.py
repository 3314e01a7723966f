"""Run the API with uvicorn: ``python -m src.api``."""
import uvicorn

from src.config import get_secret, load_config


def main() -> None:
    config = load_config()
    uvicorn.run(
        "src.api.app:create_app",
        factory=True,
        host=get_secret("HISTORY_MAKER_HOST", "0.0.0.0"),
        port=int(get_secret("HISTORY_MAKER_PORT", "8000")),
        log_level=config.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    main()
