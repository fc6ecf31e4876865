# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
# 
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

import logging
import os
from pathlib import Path
from typing import List

from ..errors import PostError
from .images import IMAGE_PREFIX

logger = logging.getLogger(__name__)

INDEX_FILE = "index.md"

class PostDirectory:
    """Maps post ids to their on-disk shape inside the posts directory.

    A post without media is a loose ``<id>.md`` file; a post with media is a
    ``<id>/`` directory holding ``index.md`` and ``image_<n>.<ext>`` files.
    """

    def __init__(self, posts_dir):
        self.posts_dir = Path(posts_dir)

    def loose_file(self, post_id: int) -> Path:
        return self.posts_dir / f"{post_id}.md"

    def unit_dir(self, post_id: int) -> Path:
        return self.posts_dir / str(post_id)

    def index_file(self, post_id: int) -> Path:
        return self.unit_dir(post_id) / INDEX_FILE

    def is_directory_unit(self, post_id: int) -> bool:
        return self.unit_dir(post_id).is_dir()

    def image_names(self, post_id: int) -> List[str]:
        """Media file names of a post, sorted lexicographically (``image_10`` before ``image_2``).

        A post without a directory has no media.
        """
        unit_dir = self.unit_dir(post_id)
        try:
            entries = os.listdir(unit_dir)
        except (FileNotFoundError, NotADirectoryError):
            return []
        except OSError as e:
            raise PostError(f"failed to read post directory {unit_dir}: {e}") from e

        return sorted(name for name in entries if name.startswith(IMAGE_PREFIX))

    def post_ids(self) -> List[int]:
        """Ids of every post unit, in directory scan order.

        Entries whose stem is not an integer, and ``index`` files, are skipped.
        A missing posts directory is an empty store.
        """
        try:
            entries = os.listdir(self.posts_dir)
        except FileNotFoundError:
            return []
        except OSError as e:
            raise PostError(f"failed to read posts directory {self.posts_dir}: {e}") from e

        ids = []
        for name in entries:
            if "index" in name:
                continue
            stem = name.split(".")[0]
            try:
                ids.append(int(stem))
            except ValueError:
                continue
        return ids

    def resolve_edit_target(self, requested_id: int) -> int:
        """Return the existing post id closest to ``requested_id``.

        Edits may arrive with a message id that drifted from the one the post was
        created with, so they snap to the nearest unit. Equal distances resolve to
        the lower id. With no posts on disk the requested id is returned unchanged.
        """
        ids = self.post_ids()
        if not ids:
            logger.debug(f"No posts on disk, edit of {requested_id} targets itself")
            return requested_id

        target = min(ids, key=lambda post_id: (abs(requested_id - post_id), post_id))
        if target != requested_id:
            logger.debug(f"Edit of post {requested_id} resolved to existing post {target}")
        return target
