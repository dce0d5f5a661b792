"""Flask application entry point for the activity digest."""

from __future__ import annotations

import atexit

from flask import Flask

from .api.routes import create_blueprint
from .bootstrap import BootstrapContext, bootstrap_pipeline


def create_app(ctx: BootstrapContext | None = None) -> Flask:
    ctx = ctx or bootstrap_pipeline()
    app = Flask(__name__)
    app.config["DIGEST_CONFIG"] = ctx.config
    app.extensions["digest"] = ctx
    app.register_blueprint(create_blueprint(ctx.pipeline), url_prefix="/api")
    atexit.register(ctx.shutdown)
    return app


if __name__ == "__main__":
    app = create_app()
    app.run(host="0.0.0.0", port=8060)
