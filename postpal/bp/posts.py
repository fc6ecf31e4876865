# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
# 
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

from flask import Blueprint, current_app, jsonify, request
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import hmac
import logging
import threading

from postpal.errors import NoChangesError
from postpal.models.post import Post

logger = logging.getLogger(__name__)
posts_bp = Blueprint('posts', __name__)

# One mutation at a time per working tree; the git index is shared state
repo_lock = threading.Lock()

def _ctx() -> Dict[str, Any]:
    return current_app.extensions['postpal']

def _payload() -> Dict[str, Any]:
    """Form fields, or the JSON body when the request has no form."""
    if request.form:
        return request.form.to_dict()
    return request.get_json(silent=True) or {}

def _parse_int(value, field_name: str) -> int:
    if value is None or str(value).strip() == "":
        raise ValueError(f"Missing required field: {field_name}")
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValueError(f"Invalid integer for {field_name}: {value}") from None

def _parse_date(value) -> datetime:
    """Accept ISO 8601 or a unix timestamp; default to now."""
    if value is None or str(value).strip() == "":
        return datetime.now(timezone.utc)
    value = str(value).strip()
    if value.isdigit():
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"Invalid date: {value}") from None

def _parse_bool(value, default: bool = True) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() not in ("0", "false", "no", "off")

def _publish(message: str) -> bool:
    """Commit and push; False when there was nothing to commit."""
    try:
        _ctx()['posts'].publish(message)
        return True
    except NoChangesError:
        logger.info(f"Nothing to publish for '{message}'")
        return False

@posts_bp.before_request
def require_api_key():
    """All post endpoints need the API key in the Authorization header."""
    expected_api_key: Optional[str] = _ctx()['config'].API_KEY
    if expected_api_key is None:
        logger.error("API_KEY is not set; rejecting API request")
        return jsonify({'error': 'API key is not configured'}), 503

    api_key = request.headers.get('Authorization')
    if not api_key:
        return jsonify({'error': 'API key is missing'}), 401
    if api_key.startswith('Bearer '):
        api_key = api_key[len('Bearer '):]
    if not hmac.compare_digest(api_key.encode(), expected_api_key.encode()):
        logger.warning(f"Invalid API key from {request.remote_addr}")
        return jsonify({'error': 'Invalid API key'}), 403

# POST /api/posts
@posts_bp.route('/posts', methods=['POST'])
def create_post():
    data = _payload()
    try:
        post_id = _parse_int(data.get('id'), 'id')
        date = _parse_date(data.get('date'))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    content = data.get('content', '')
    media_files = [f.read() for f in request.files.getlist('media')]
    if not content and not media_files:
        return jsonify({'error': 'Nothing to create: provide content and/or media'}), 400

    post = Post(post_id, content=content, title=data.get('title', ''), date=date)
    logger.debug(f"Creating {post!r} with {len(media_files)} media file(s)")

    published = False
    with repo_lock:
        _ctx()['posts'].create_post(post, media_files)
        if _parse_bool(data.get('publish')):
            published = _publish(f"Create post {post_id}")

    _ctx()['notifier'].send_post_event('created', post_id, {'Images': len(media_files), 'Published': published})
    return jsonify({'status': 'created', 'id': post_id, 'images': len(media_files), 'published': published}), 201

# PUT /api/posts/<id>
@posts_bp.route('/posts/<int:post_id>', methods=['PUT', 'PATCH'])
def edit_post(post_id):
    data = _payload()
    try:
        date = _parse_date(data.get('date'))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    media = request.files.get('media')
    media_file = media.read() if media is not None else None
    content = data.get('content', '')
    if not content and media_file is None:
        return jsonify({'error': 'Nothing to edit: provide content and/or media'}), 400

    image_hint = data.get('image_hint')
    post = Post(post_id, content=content, title=data.get('title', ''), date=date,
                image_names=[image_hint] if image_hint else None)

    published = False
    with repo_lock:
        posts = _ctx()['posts']
        target = posts.locate_post(post_id)
        posts.edit_post(post, media_file)
        if _parse_bool(data.get('publish')):
            published = _publish(f"Edit post {target['id']}")

    _ctx()['notifier'].send_post_event('edited', target['id'], {'Requested': post_id, 'Published': published})
    return jsonify({'status': 'edited', 'id': target['id'], 'requested_id': post_id, 'published': published})

# DELETE /api/posts/600,601,602
@posts_bp.route('/posts/<ids>', methods=['DELETE'])
def delete_posts(ids):
    with repo_lock:
        _ctx()['posts'].delete_post(ids)

    _ctx()['notifier'].send_post_event('deleted', ids)
    return jsonify({'status': 'deleted', 'ids': ids})

# GET /api/posts/<id>
@posts_bp.route('/posts/<int:post_id>', methods=['GET'])
def locate_post(post_id):
    return jsonify(_ctx()['posts'].locate_post(post_id))

# POST /api/publish
@posts_bp.route('/publish', methods=['POST'])
def publish():
    data = request.get_json(silent=True) or {}
    message = data.get('message') or "Publish posts"
    with repo_lock:
        _ctx()['posts'].publish(message)

    _ctx()['notifier'].send_post_event('published', '-', {'Message': message})
    return jsonify({'status': 'published', 'message': message})

# POST /api/sync
@posts_bp.route('/sync', methods=['POST'])
def sync():
    with repo_lock:
        _ctx()['git'].pull()
    return jsonify({'status': 'synced'})
