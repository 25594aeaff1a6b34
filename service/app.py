import atexit
import os

from flask import Flask
from flask_caching import Cache
from flask_session import Session

import cache_provider
from config import CACHE_THRESHOLD, STAGE, logger
from document_store import init_firebase
from repositories.registry import Repositories
from routes import register_routes


def create_app(repositories: Repositories | None = None, start_collections: bool = True, instance_path: str | None = None) -> Flask:
    """Build the dashboard app.

    When ``repositories`` is not given, Firebase is initialised from config;
    if that fails the app still starts and every page reports the store as
    unavailable.
    """
    app = Flask(__name__, instance_path=instance_path)
    app.secret_key = os.getenv("FLASK_SECRET_KEY", os.urandom(16))

    os.makedirs(app.instance_path, exist_ok=True)
    session_dir = os.path.join(app.instance_path, "flask_session")
    os.makedirs(session_dir, exist_ok=True)
    app.config.update(
        SESSION_TYPE="filesystem",
        SESSION_FILE_DIR=session_dir,
        SESSION_PERMANENT=False,
        SESSION_USE_SIGNER=True,
    )
    Session(app)

    cache = Cache(app, config={"CACHE_TYPE": "SimpleCache", "CACHE_DEFAULT_TIMEOUT": 0, "CACHE_THRESHOLD": CACHE_THRESHOLD})
    cache_provider.set_cache(cache)

    if repositories is None:
        repositories = Repositories.build(init_firebase())
    cache_provider.set_repositories(repositories)

    if start_collections:
        repositories.start()
        atexit.register(repositories.stop)

    register_routes(app)
    logger.info("Dashboard app created", stage=STAGE, store_available=repositories.available)
    return app


if __name__ == "__main__":
    create_app().run(port=8080, debug=STAGE == "dev")
