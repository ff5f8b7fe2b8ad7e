"""
Serve the BoxNow checkout bridge with uvicorn.

Bind address comes from HOST / PORT (default 0.0.0.0:3001). Auto-reload is
only ever switched on for a DEBUG development run.
"""
import logging
import sys
from pathlib import Path
from typing import Any, Dict

# Make `app` importable when run as `python scripts/start_api.py`.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import uvicorn
from pydantic import ValidationError

logger = logging.getLogger("start_api")


def uvicorn_options(config) -> Dict[str, Any]:
    options: Dict[str, Any] = {
        "host": config.HOST,
        "port": config.PORT,
        "log_level": "debug" if config.DEBUG else "info",
    }
    if config.DEBUG and config.ENVIRONMENT == "development":
        options["reload"] = True
        options["reload_dirs"] = [str(PROJECT_ROOT / "app")]
    return options


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        from app.core.config import settings
    except ValidationError as e:
        logger.error(f"Invalid configuration, not starting: {e}")
        return 1

    options = uvicorn_options(settings)
    logger.info(f"Starting {settings.APP_NAME} on {options['host']}:{options['port']} env={settings.ENVIRONMENT}")
    uvicorn.run("app.main:app", **options)
    return 0


if __name__ == "__main__":
    sys.exit(main())
