"""
=============================================================================
GESTURE SERVICE - APPLICATION ENTRY POINT (app.py)
=============================================================================

WHAT THIS FILE DOES:
--------------------
Starts the HTTP service that game clients talk to. A game creates a gesture
session, tells it what movement (or rhythm, or path) the child should produce,
then streams facial metric frames or pointer positions. Each response carries
the confirmed state, the blow meter and any hit/miss/cycle/trace events.

The routes themselves live in routes.py; the gesture logic lives in gestures/.

HOW TO RUN:
-----------
  - From project root:  python app.py
  - By default the service is at:  http://localhost:5000

CONFIGURATION:
--------------
  - Defaults (stability time, cooldown, thresholds, port, ...) come from the
    .env file and config.py.
=============================================================================
"""

# ---------------------------------------------------------------------------
# Step 1: Load environment variables from .env (before anything else)
# ---------------------------------------------------------------------------
# config.py reads os.environ at import time, so .env must be loaded first.
import logging
from pathlib import Path
from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent / ".env")

# ---------------------------------------------------------------------------
# Step 2: Import the web framework and our own modules
# ---------------------------------------------------------------------------
from flask import Flask
from flask_cors import CORS
from flask_compress import Compress

from routes import register_routes
import config

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# ---------------------------------------------------------------------------
# Step 3: Warn if thresholds in .env contradict each other
# ---------------------------------------------------------------------------
config.warn_invalid_config()


def create_app() -> Flask:
    """
    Create and configure the Flask application.

    What it does:
      - Enables CORS so browser games on another origin can call the API.
      - Enables compression for batched frame responses.
      - Registers the gesture routes from routes.py.

    Returns:
        The configured Flask application.
    """
    app = Flask(__name__)

    # Game clients are served from other origins (dev servers, mobile webviews).
    CORS(app, resources={r"/*": {"origins": "*"}})

    Compress(app)

    register_routes(app)

    return app


# ---------------------------------------------------------------------------
# Create the one global Flask application
# ---------------------------------------------------------------------------
app = create_app()


# ---------------------------------------------------------------------------
# Run the server when this file is executed directly (e.g. "python app.py")
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    # FLASK_DEBUG: Flask's dev server with reloader. Otherwise Waitress, which
    # serves requests from several threads (sessions are lock-protected).
    if config.FLASK_DEBUG:
        app.run(
            host=config.FLASK_HOST,
            port=config.FLASK_PORT,
            debug=True
        )
    else:
        import waitress
        waitress.serve(app, host=config.FLASK_HOST, port=config.FLASK_PORT, threads=6)
