# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
# 
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

from flask import Flask, jsonify, request, g
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
import logging
import time
import traceback
from typing import Optional

from .config import Config
from .discord import DiscordNotifier
from .errors import GitError, InvalidPostIdError, NoChangesError, PostPalError
from .repo.gitmanager import GitManager
from .utility import HealthcheckAccessFilter
from .version import __version__
from .zola.service import PostService
from . import set_log_level

logger = logging.getLogger("postpal.server")
request_logger = logging.getLogger("postpal.request")
request_logger.addFilter(HealthcheckAccessFilter())

def create_app(config: Optional[Config] = None,
               git_manager: Optional[GitManager] = None,
               notifier: Optional[DiscordNotifier] = None) -> Flask:
    """Build the PostPal Flask application.

    ``git_manager`` and ``notifier`` are built from ``config`` when not given.
    """
    config = config or Config()
    if config.VERBOSE:
        set_log_level(True)

    app = Flask(__name__)
    app.debug = config.DEBUG
    app.config['MAX_CONTENT_LENGTH'] = config.MAX_CONTENT_LENGTH

    if git_manager is None:
        git_manager = GitManager(
            config.REPO_DIR,
            repo_url=config.REPO_URL,
            branch=config.REPO_BRANCH,
            auth_token=config.GIT_AUTH_TOKEN,
            author_name=config.GIT_AUTHOR_NAME,
            author_email=config.GIT_AUTHOR_EMAIL,
        )
    if notifier is None:
        notifier = DiscordNotifier(config.DISCORD_WEBHOOK_URL)

    posts = PostService(
        posts_dir=config.POSTS_DIR,
        rel_posts_dir=config.POSTS_SUBDIR,
        channel_id=config.CHANNEL_ID,
        git=git_manager,
    )
    app.extensions['postpal'] = {
        'config': config,
        'git': git_manager,
        'posts': posts,
        'notifier': notifier,
    }

    logger.info("PostPal version %s starting up", __version__)
    logger.info(f"* Repository: {config.REPO_DIR} ({config.REPO_BRANCH})")
    logger.info(f"* Posts: {config.POSTS_DIR}")
    if config.API_KEY is None:
        logger.warning("* API_KEY is not set, the posts API will reject every request.")

    if config.SYNC_ON_STARTUP:
        try:
            git_manager.ensure_repository()
        except GitError as e:
            logger.error(f"Failed to sync site repository: {e}")
            notifier.send_diagnostic("error", "Git", "Failed to sync site repository on startup", {"Error": str(e)})

    from .bp.posts import posts_bp
    from .bp.healthcheck import bp_healthcheck
    app.register_blueprint(posts_bp, url_prefix='/api')
    app.register_blueprint(bp_healthcheck, url_prefix='/')

    CORS(app, resources={
        r"/api/*": {"origins": config.CORS_ORIGINS}
    })

    @app.before_request
    def start_timer():
        g.request_start_time = time.time()

    @app.after_request
    def add_security_headers(response):
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['Referrer-Policy'] = 'no-referrer'
        return response

    @app.after_request
    def log_request(response):
        query_string = f"?{request.query_string.decode()}" if request.query_string else ""
        started = g.get('request_start_time', time.time())
        request_logger.info(
            '%s %s%s %s %s %s "%s"',
            request.method,
            request.path,
            query_string,
            response.status_code,
            request.remote_addr,
            f"{(time.time() - started):.2f}s",
            request.headers.get('User-Agent', 'Unknown'),
            extra={'path': request.path},
        )
        return response

    @app.errorhandler(InvalidPostIdError)
    def handle_invalid_post_id(error):
        return jsonify({"error": str(error)}), 400

    @app.errorhandler(NoChangesError)
    def handle_no_changes(error):
        return jsonify({"error": str(error)}), 409

    @app.errorhandler(PostPalError)
    def handle_postpal_error(error):
        logger.error(f"{type(error).__name__} on {request.method} {request.path}: {error}")
        notifier.send_diagnostic(
            level="error",
            service="Posts",
            message=str(error),
            details={"Endpoint": request.path, "Method": request.method, "Error Type": type(error).__name__},
        )
        return jsonify({"error": str(error)}), 500

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        if error.code == 404:
            logger.warning(f"404 error: {request.path} not found")
        return jsonify({"error": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_internal_error(error):
        tb_str = traceback.format_exc()
        logger.error(f"Internal server error: {error}\nTraceback:\n{tb_str}")
        notifier.send_diagnostic(
            level="error",
            service="Flask Application",
            message="Internal server error occurred",
            details={"Error": str(error), "Endpoint": request.path, "Method": request.method},
        )
        if app.debug:
            return jsonify({"error": "Internal server error", "message": str(error), "traceback": tb_str}), 500
        return jsonify({"error": "Internal server error"}), 500

    @app.route('/')
    def index():
        return "PostPal is running."

    return app
