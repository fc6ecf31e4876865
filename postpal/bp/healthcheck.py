# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
# 
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

from flask import Blueprint, current_app, jsonify, request, make_response
from datetime import datetime, timedelta, timezone
from ..version import __version__
from typing import Dict, Any
import os
import shutil

bp_healthcheck = Blueprint('healthcheck', __name__)

# In-memory cache for healthcheck
_healthcheck_cache: Dict[str, Any] = {
    "response": None,
    "timestamp": None,
    "status_code": None
}

class Healthcheck:
    def __init__(self, app):
        self.app = app
        self.ctx = app.extensions['postpal']
        self.overall_healthy = True
        self.result = {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "version": __version__,
            "checks": {},
            "environment": "development" if app.debug else "production"
        }

    def run(self):
        self.check_git_binary()
        self.check_repository()
        self.check_posts_directory()
        self.check_discord()
        self.result["status"] = "healthy" if self.overall_healthy else "unhealthy"
        return self.result, self.overall_healthy

    def _set(self, name: str, status: str, message: str, **details):
        self.result["checks"][name] = {"status": status, "message": message, "details": details}
        if status == "unhealthy":
            self.overall_healthy = False

    def check_git_binary(self):
        git_path = shutil.which("git")
        if git_path:
            self._set("git", "healthy", "git executable found", path=git_path)
        else:
            self._set("git", "unhealthy", "git executable not found on PATH")

    def check_repository(self):
        git = self.ctx['git']
        if git.repo_exists():
            self._set("repository", "healthy", "Site repository is present",
                      path=str(git.repo_dir), branch=git.branch)
        else:
            self._set("repository", "unhealthy", "Site repository has not been cloned",
                      path=str(git.repo_dir), remote_configured=bool(git.repo_url))

    def check_posts_directory(self):
        posts_dir = self.ctx['posts'].posts_dir
        if not posts_dir.is_dir():
            # Created on first post
            self._set("posts", "degraded", "Posts directory does not exist yet", path=str(posts_dir))
        elif not os.access(posts_dir, os.W_OK):
            self._set("posts", "unhealthy", "Posts directory is not writable", path=str(posts_dir))
        else:
            post_count = len(self.ctx['posts'].directory.post_ids())
            self._set("posts", "healthy", "Posts directory is writable", path=str(posts_dir), posts=post_count)

    def check_discord(self):
        notifier = self.ctx['notifier']
        if not notifier.enabled:
            self._set("discord", "degraded", "Discord notifications not configured", webhook_configured=False)
        elif notifier.is_healthy():
            self._set("discord", "healthy", "Discord notifier running", queue_size=notifier.get_queue_size())
        else:
            self._set("discord", "degraded", "Discord notifier worker is not running", webhook_configured=True)

@bp_healthcheck.route("/api/health")
@bp_healthcheck.route("/api/healthcheck")
@bp_healthcheck.route("/health")
@bp_healthcheck.route("/healthcheck")
def health():
    """Health check for the repository, posts directory, git and notifications."""

    # Check for cache usage
    use_cache = request.args.get("c") == "1"
    now = datetime.now(timezone.utc)
    cache_valid = (
        _healthcheck_cache["response"] is not None and
        _healthcheck_cache["timestamp"] is not None and
        (now - _healthcheck_cache["timestamp"]) < timedelta(minutes=1)
    )

    if use_cache and cache_valid:
        resp = make_response(jsonify(_healthcheck_cache["response"]), _healthcheck_cache["status_code"])
        resp.headers["X-Cache"] = "HIT"
        return resp

    hc = Healthcheck(current_app)
    health_status, overall_healthy = hc.run()

    status_code = 200 if overall_healthy else 503

    _healthcheck_cache["response"] = health_status
    _healthcheck_cache["timestamp"] = now
    _healthcheck_cache["status_code"] = status_code

    resp = make_response(jsonify(health_status), status_code)
    resp.headers["X-Cache"] = "MISS"
    return resp
