from __future__ import annotations

# Allow running scripts without requiring an editable install (`pip install -e .`).
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
sys.path.insert(0, str(SRC_PATH))

import os

# `uvicorn` runs the FastAPI map app as an ASGI server during local development.
import uvicorn

from velovmap.api.app import create_app
from velovmap.config.loader import load_config


def main() -> None:
    config = load_config()
    app = create_app(config)

    # The forecast backend already listens on 8000, so the map defaults to 8080.
    host = os.getenv("VELOVMAP_HOST", "127.0.0.1")
    port = int(os.getenv("VELOVMAP_PORT", "8080"))

    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
