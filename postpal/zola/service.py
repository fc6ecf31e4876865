# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
# 
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

import logging
import os
import re
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

from ..errors import GitError, InvalidPostIdError, PostError
from ..models.post import Post
from .directory import INDEX_FILE, PostDirectory
from .images import classify_image, image_format_of, image_name
from .processor import render_post

logger = logging.getLogger(__name__)

_POST_ID = re.compile(r"^[+-]?\d+$")

class VersionControl(Protocol):
    """What the post service needs from the repository holding the site."""

    def add(self, *paths: str) -> None: ...

    def remove(self, path: str) -> None: ...

    def commit_and_push(self, message: str) -> None: ...

class PostService:
    """Creates, edits and deletes Zola posts inside a git working tree.

    Every method performs blocking filesystem and git calls. The caller must
    make sure only one mutating call runs against a working tree at a time;
    the git index is shared and nothing here locks it.

    Args:
        posts_dir: Directory the post units live in.
        rel_posts_dir: The same directory relative to the repository root, used for staging.
        channel_id: Title used for posts that arrive without one.
        git: Version-control collaborator (see :class:`VersionControl`).
    """

    def __init__(self, posts_dir, rel_posts_dir, channel_id: str, git: VersionControl):
        self.posts_dir = Path(posts_dir)
        self.rel_posts_dir = Path(rel_posts_dir)
        self.channel_id = channel_id
        self.git = git
        self.directory = PostDirectory(self.posts_dir)

    def create_post(self, post: Post, media_files: Iterable[bytes] = ()) -> None:
        """Write a new post and stage it together with its media.

        Posts with media become ``<id>/index.md`` plus ``image_<n>.<ext>`` files,
        posts without media a loose ``<id>.md``. An existing post with the same id
        is replaced, whatever its shape. Nothing is committed.
        """
        post = post.copy()
        media_files = list(media_files)
        post.image_names = [image_name(i, classify_image(data)) for i, data in enumerate(media_files)]
        self._discard_existing(post.id)

        if post.image_names:
            markup_path = self.directory.index_file(post.id)
        else:
            markup_path = self.directory.loose_file(post.id)
        self._make_dir(markup_path.parent)

        self._write_markup(post, markup_path)

        unit_dir = self.directory.unit_dir(post.id)
        for name, data in zip(post.image_names, media_files):
            image_path = unit_dir / name
            self._write_file(image_path, data)
            self._stage(image_path)

        logger.info(f"Created post {post.id} with {len(media_files)} media file(s)")

    def edit_post(self, post: Post, media_file: Optional[bytes] = None) -> None:
        """Rewrite an existing post and/or attach one more media file to it.

        The post edited is the existing one whose id is closest to ``post.id``.
        A new media file is named ``image_<offset>`` where offset is the distance
        between the requested and the resolved id. Nothing is committed.
        """
        post = post.copy()
        requested_id = post.id
        target_id = self.directory.resolve_edit_target(requested_id)
        existing_images = self.directory.image_names(target_id)
        post.id = target_id

        directory_form = bool(existing_images) or self.directory.is_directory_unit(target_id)
        if media_file is not None and not directory_form:
            self._promote_to_directory(target_id)
            directory_form = True

        if post.content:
            if existing_images and post.image_names:
                hinted_format = image_format_of(post.image_names[0])
                post.image_names = [image_name(i, hinted_format) for i in range(len(existing_images))]
            else:
                post.image_names = existing_images

            if directory_form:
                markup_path = self.directory.index_file(target_id)
            else:
                markup_path = self.directory.loose_file(target_id)
            self._make_dir(markup_path.parent)
            self._write_markup(post, markup_path)
            logger.info(f"Rewrote post {target_id} (requested {requested_id})")

        if media_file is not None:
            offset = requested_id - target_id
            image_path = self.directory.unit_dir(target_id) / image_name(offset, classify_image(media_file))
            self._make_dir(image_path.parent)
            self._write_file(image_path, media_file)
            self._stage(image_path)
            logger.info(f"Attached {image_path.name} to post {target_id} (requested {requested_id})")

    def delete_post(self, ids: str) -> None:
        """Delete a comma-separated batch of posts, then commit and push.

        Unknown ids are skipped. A malformed id aborts the batch at that entry;
        entries before it stay deleted. Unstaging failures are ignored, the final
        commit failure (including :class:`NoChangesError`) is not.
        """
        for raw_id in ids.split(","):
            raw_id = raw_id.strip()
            if not raw_id:
                continue
            if not _POST_ID.match(raw_id):
                raise InvalidPostIdError(f"invalid post ID: {raw_id}")
            post_id = int(raw_id)

            try:
                image_names = self.directory.image_names(post_id)
            except PostError as e:
                logger.warning(f"Skipping post {post_id}: {e}")
                continue

            if image_names or self.directory.is_directory_unit(post_id):
                self._remove_directory(post_id, image_names)
            else:
                self._remove_loose_file(post_id)

            logger.info(f"Deleted post {post_id}")

        self.git.commit_and_push(f"Delete post(s): {ids}")

    def locate_post(self, requested_id: int) -> Dict[str, Any]:
        """Describe the post an edit of ``requested_id`` would land on."""
        target_id = self.directory.resolve_edit_target(requested_id)
        image_names = self.directory.image_names(target_id)

        if self.directory.is_directory_unit(target_id):
            shape, markup_path = "directory", self.directory.index_file(target_id)
        elif self.directory.loose_file(target_id).is_file():
            shape, markup_path = "file", self.directory.loose_file(target_id)
        else:
            shape, markup_path = "missing", None

        return {
            "requested_id": requested_id,
            "id": target_id,
            "shape": shape,
            "path": str(self._relative(markup_path)) if markup_path else None,
            "images": image_names,
        }

    def publish(self, message: str) -> None:
        """Commit whatever is staged and push it."""
        self.git.commit_and_push(message)

    def _promote_to_directory(self, post_id: int) -> None:
        # Keeps one physical shape per id: the loose file becomes the index
        loose_file = self.directory.loose_file(post_id)
        self._make_dir(self.directory.unit_dir(post_id))
        if not loose_file.is_file():
            return

        index_file = self.directory.index_file(post_id)
        try:
            os.replace(loose_file, index_file)
        except OSError as e:
            raise PostError(f"failed to move {loose_file} to {index_file}: {e}") from e

        try:
            self.git.remove(str(self._relative(loose_file)))
        except GitError as e:
            raise GitError(f"failed to unstage {loose_file.name}: {e}") from e
        self._stage(index_file)
        logger.info(f"Moved post {post_id} into a directory to hold media")

    def _discard_existing(self, post_id: int) -> None:
        # A re-created id starts from nothing, in whichever shape the new post needs
        if self.directory.loose_file(post_id).is_file():
            logger.warning(f"Post {post_id} already exists as a file, replacing it")
            self._remove_loose_file(post_id)
        if self.directory.is_directory_unit(post_id):
            logger.warning(f"Post {post_id} already exists as a directory, replacing it")
            self._remove_directory(post_id, self.directory.image_names(post_id))

    def _remove_directory(self, post_id: int, image_names: List[str]) -> None:
        unit_dir = self.directory.unit_dir(post_id)
        try:
            shutil.rmtree(unit_dir)
        except OSError as e:
            raise PostError(f"failed to remove post directory {unit_dir}: {e}") from e

        self._try_unstage(unit_dir / INDEX_FILE)
        for name in image_names:
            self._try_unstage(unit_dir / name)

    def _remove_loose_file(self, post_id: int) -> None:
        loose_file = self.directory.loose_file(post_id)
        try:
            os.remove(loose_file)
        except FileNotFoundError:
            logger.debug(f"Post {post_id} has no file, nothing to delete")
        except OSError as e:
            raise PostError(f"failed to remove post file {loose_file}: {e}") from e
        self._try_unstage(loose_file)

    def _write_markup(self, post: Post, path: Path) -> None:
        markup = render_post(post, self.channel_id)
        self._write_file(path, markup.encode("utf-8"))
        self._stage(path)

    def _make_dir(self, path: Path) -> None:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PostError(f"failed to create directory {path}: {e}") from e

    def _write_file(self, path: Path, data: bytes) -> None:
        try:
            fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        except OSError as e:
            raise PostError(f"failed to write {path}: {e}") from e
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.chmod(tmp_path, 0o644)
            os.replace(tmp_path, path)
        except OSError as e:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise PostError(f"failed to write {path}: {e}") from e

    def _relative(self, path: Path) -> Path:
        return self.rel_posts_dir / path.relative_to(self.posts_dir)

    def _stage(self, path: Path) -> None:
        rel_path = self._relative(path)
        try:
            self.git.add(str(rel_path))
        except GitError as e:
            raise GitError(f"failed to add {rel_path} to git: {e}") from e

    def _try_unstage(self, path: Path) -> None:
        rel_path = self._relative(path)
        try:
            self.git.remove(str(rel_path))
        except GitError as e:
            logger.debug(f"Ignoring failed removal of {rel_path} from git: {e}")
