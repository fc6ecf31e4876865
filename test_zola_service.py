#!/usr/bin/env python3
"""
Unit tests for the post directory resolver and the post lifecycle service.
"""

import os
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch

from postpal.errors import GitError, InvalidPostIdError, NoChangesError, PostError
from postpal.models.post import Post
from postpal.zola.directory import PostDirectory
from postpal.zola.service import PostService

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16
JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 16
GIF = b"GIF89a" + b"\x00" * 16

DATE = datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc)

class RecordingGit:
    """In-memory stand-in for the git collaborator."""

    def __init__(self):
        self.added = []
        self.removed = []
        self.commits = []
        self.staged = False
        self.fail_add = False
        self.fail_remove = False

    def add(self, *paths):
        if self.fail_add:
            raise GitError("index.lock exists")
        self.added.extend(paths)
        self.staged = True

    def remove(self, path):
        if self.fail_remove:
            raise GitError(f"pathspec '{path}' did not match any files")
        self.removed.append(path)
        self.staged = True

    def commit_and_push(self, message):
        if not self.staged:
            raise NoChangesError("no changes to commit")
        self.commits.append(message)
        self.staged = False

class PostStoreTestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.repo_dir = Path(self._tmp.name) / "site"
        self.posts_dir = self.repo_dir / "content" / "posts"
        self.git = RecordingGit()
        self.service = PostService(self.posts_dir, "content/posts", "chan", self.git)

    def tearDown(self):
        self._tmp.cleanup()

    def make_loose(self, *ids):
        self.posts_dir.mkdir(parents=True, exist_ok=True)
        for post_id in ids:
            (self.posts_dir / f"{post_id}.md").write_text(f"post {post_id}\n")

    def read(self, *parts):
        return self.posts_dir.joinpath(*parts).read_text()

class TestPostDirectory(PostStoreTestCase):
    """Test cases for id resolution and media listing."""

    def test_resolve_nearest(self):
        self.make_loose(100, 105, 110)
        directory = PostDirectory(self.posts_dir)
        self.assertEqual(directory.resolve_edit_target(103), 105)
        self.assertEqual(directory.resolve_edit_target(107), 105)
        self.assertEqual(directory.resolve_edit_target(108), 110)
        self.assertEqual(directory.resolve_edit_target(500), 110)
        self.assertEqual(directory.resolve_edit_target(105), 105)

    def test_resolve_tie_prefers_lower_id(self):
        self.make_loose(110, 100)
        self.assertEqual(PostDirectory(self.posts_dir).resolve_edit_target(105), 100)

    def test_resolve_with_no_posts(self):
        directory = PostDirectory(self.posts_dir)
        self.assertEqual(directory.resolve_edit_target(42), 42)
        self.posts_dir.mkdir(parents=True)
        self.assertEqual(directory.resolve_edit_target(42), 42)

    def test_post_ids_skip_index_and_non_numeric(self):
        self.make_loose(5)
        (self.posts_dir / "_index.md").write_text("section")
        (self.posts_dir / "about.md").write_text("about")
        (self.posts_dir / "12").mkdir()
        self.assertEqual(sorted(PostDirectory(self.posts_dir).post_ids()), [5, 12])

    def test_image_names_sorted_lexicographically(self):
        unit = self.posts_dir / "7"
        unit.mkdir(parents=True)
        for name in ("image_2.jpg", "image_10.jpg", "index.md", "image_0.png"):
            (unit / name).write_bytes(b"x")
        self.assertEqual(
            PostDirectory(self.posts_dir).image_names(7),
            ["image_0.png", "image_10.jpg", "image_2.jpg"],
        )

    def test_image_names_missing_directory(self):
        self.assertEqual(PostDirectory(self.posts_dir).image_names(7), [])

class TestCreatePost(PostStoreTestCase):
    """Test cases for post creation."""

    def test_create_without_media_writes_loose_file(self):
        self.service.create_post(Post(42, content="Hello\nWorld", title="Hi", date=DATE))

        self.assertEqual(
            self.read("42.md"),
            '+++\ntitle = "Hi"\ndate = 2024-05-06T07:08:09Z\n\n+++\n\nHello  \nWorld\n',
        )
        self.assertFalse((self.posts_dir / "42").exists())
        self.assertEqual(self.git.added, ["content/posts/42.md"])

    def test_create_with_media_writes_directory(self):
        self.service.create_post(Post(42, content="Pics", title="Hi", date=DATE), [PNG, JPEG, GIF])

        unit = self.posts_dir / "42"
        self.assertFalse((self.posts_dir / "42.md").exists())
        self.assertEqual(sorted(os.listdir(unit)), ["image_0.png", "image_1.jpg", "image_2.gif", "index.md"])
        self.assertEqual((unit / "image_0.png").read_bytes(), PNG)
        self.assertIn('[extra]\nimages = ["image_0.png", "image_1.jpg", "image_2.gif"]\n', self.read("42", "index.md"))
        self.assertEqual(self.git.added, [
            "content/posts/42/index.md",
            "content/posts/42/image_0.png",
            "content/posts/42/image_1.jpg",
            "content/posts/42/image_2.gif",
        ])

    def test_create_derives_title_from_address(self):
        self.service.create_post(Post(1, content="Token launch\n0xAbC123", date=DATE))
        markup = self.read("1.md")
        self.assertIn('title = "chan [0xAbC123]"', markup)
        self.assertTrue(markup.endswith("\n\nToken launch\n"))

    def test_create_does_not_mutate_caller_post(self):
        post = Post(1, content="text", date=DATE)
        self.service.create_post(post, [PNG])
        self.assertEqual(post.title, "")
        self.assertEqual(post.image_names, [])

    def test_staging_failure_is_fatal(self):
        self.git.fail_add = True
        with self.assertRaises(GitError):
            self.service.create_post(Post(1, content="text", date=DATE))

    def test_recreate_without_media_replaces_directory(self):
        self.service.create_post(Post(5, content="Pics", title="A", date=DATE), [PNG, JPEG])
        self.service.create_post(Post(5, content="Text now", title="B", date=DATE))

        self.assertFalse((self.posts_dir / "5").exists())
        self.assertIn("Text now", self.read("5.md"))
        self.assertEqual(self.git.removed, [
            "content/posts/5/index.md",
            "content/posts/5/image_0.png",
            "content/posts/5/image_1.jpg",
        ])

        self.service.delete_post("5")
        self.assertEqual(os.listdir(self.posts_dir), [])

    def test_recreate_with_media_replaces_loose_file(self):
        self.service.create_post(Post(5, content="Text", title="A", date=DATE))
        self.service.create_post(Post(5, content="Pics now", title="B", date=DATE), [GIF])

        self.assertFalse((self.posts_dir / "5.md").exists())
        self.assertEqual(sorted(os.listdir(self.posts_dir / "5")), ["image_0.gif", "index.md"])
        self.assertEqual(self.git.removed, ["content/posts/5.md"])

        self.service.delete_post("5")
        self.assertEqual(os.listdir(self.posts_dir), [])

    def test_recreate_with_fewer_media_drops_stale_images(self):
        self.service.create_post(Post(5, content="x", date=DATE), [PNG, PNG, PNG])
        self.service.create_post(Post(5, content="x", date=DATE), [JPEG])
        self.assertEqual(sorted(os.listdir(self.posts_dir / "5")), ["image_0.jpg", "index.md"])

class TestEditPost(PostStoreTestCase):
    """Test cases for editing, including id drift."""

    def test_media_edit_uses_id_offset(self):
        self.service.create_post(Post(200, content="Album", title="A", date=DATE), [JPEG])
        before = self.read("200", "index.md")

        self.service.edit_post(Post(205, date=DATE), PNG)

        self.assertTrue((self.posts_dir / "200" / "image_5.png").is_file())
        self.assertFalse((self.posts_dir / "205").exists())
        self.assertEqual(self.read("200", "index.md"), before)
        self.assertEqual(self.git.added[-1], "content/posts/200/image_5.png")

    def test_media_edit_promotes_loose_post(self):
        self.service.create_post(Post(200, content="Text only", title="T", date=DATE))

        self.service.edit_post(Post(205, date=DATE), GIF)

        self.assertFalse((self.posts_dir / "200.md").exists())
        self.assertIn("Text only", self.read("200", "index.md"))
        self.assertTrue((self.posts_dir / "200" / "image_5.gif").is_file())
        self.assertIn("content/posts/200.md", self.git.removed)
        self.assertIn("content/posts/200/index.md", self.git.added)

    def test_content_edit_rewrites_loose_post(self):
        self.make_loose(100, 110)
        self.service.edit_post(Post(102, content="Updated", title="New", date=DATE))

        self.assertEqual(
            self.read("100.md"),
            '+++\ntitle = "New"\ndate = 2024-05-06T07:08:09Z\n\n+++\n\nUpdated\n',
        )
        self.assertFalse((self.posts_dir / "102.md").exists())
        self.assertEqual(self.git.added, ["content/posts/100.md"])

    def test_content_edit_keeps_existing_image_names(self):
        self.service.create_post(Post(300, content="v1", title="T", date=DATE), [JPEG, PNG])
        self.service.edit_post(Post(300, content="v2", title="T", date=DATE))

        markup = self.read("300", "index.md")
        self.assertIn('images = ["image_0.jpg", "image_1.png"]', markup)
        self.assertTrue(markup.endswith("v2\n"))

    def test_content_edit_with_format_hint_renames_all_slots(self):
        self.service.create_post(Post(300, content="v1", title="T", date=DATE), [JPEG, JPEG, JPEG])
        self.service.edit_post(Post(300, content="v2", title="T", date=DATE, image_names=["anything.webp"]))

        self.assertIn('images = ["image_0.webp", "image_1.webp", "image_2.webp"]', self.read("300", "index.md"))

    def test_hint_ignored_without_existing_media(self):
        self.make_loose(400)
        self.service.edit_post(Post(400, content="v2", title="T", date=DATE, image_names=["x.png"]))
        self.assertNotIn("[extra]", self.read("400.md"))

    def test_edit_on_empty_store_creates_requested_id(self):
        self.service.edit_post(Post(7, content="First", title="T", date=DATE))
        self.assertIn("First", self.read("7.md"))

    def test_edit_without_content_or_media_changes_nothing(self):
        self.make_loose(100)
        self.service.edit_post(Post(100, date=DATE))
        self.assertEqual(self.read("100.md"), "post 100\n")
        self.assertEqual(self.git.added, [])

class TestDeletePost(PostStoreTestCase):
    """Test cases for batch deletion."""

    def test_delete_loose_batch(self):
        self.make_loose(600, 601, 602)
        self.service.delete_post("600,601,602")

        self.assertEqual(os.listdir(self.posts_dir), [])
        self.assertEqual(self.git.removed, [
            "content/posts/600.md", "content/posts/601.md", "content/posts/602.md",
        ])
        self.assertEqual(self.git.commits, ["Delete post(s): 600,601,602"])

    def test_delete_directory_unit(self):
        self.service.create_post(Post(42, content="Pics", date=DATE), [PNG, JPEG])
        self.service.delete_post("42")

        self.assertFalse((self.posts_dir / "42").exists())
        self.assertEqual(self.git.removed, [
            "content/posts/42/index.md",
            "content/posts/42/image_0.png",
            "content/posts/42/image_1.jpg",
        ])

    def test_unknown_id_is_a_no_op(self):
        self.make_loose(600)
        self.service.delete_post("600, 999, ")
        self.assertFalse((self.posts_dir / "600.md").exists())
        self.assertEqual(len(self.git.commits), 1)

    def test_malformed_id_aborts_rest_of_batch(self):
        self.make_loose(600, 601)
        with self.assertRaises(InvalidPostIdError):
            self.service.delete_post("600,abc,601")

        self.assertFalse((self.posts_dir / "600.md").exists())
        self.assertTrue((self.posts_dir / "601.md").exists())
        self.assertEqual(self.git.commits, [])

    def test_unstage_failures_are_ignored_but_empty_commit_fails(self):
        self.make_loose(600)
        self.git.fail_remove = True
        with self.assertRaises(NoChangesError):
            self.service.delete_post("600")
        self.assertFalse((self.posts_dir / "600.md").exists())

    def test_unreadable_media_listing_skips_only_that_post(self):
        self.make_loose(600, 601, 602)
        list_images = PostDirectory.image_names

        def image_names(directory, post_id):
            if post_id == 601:
                raise PostError("failed to read post directory: permission denied")
            return list_images(directory, post_id)

        with patch.object(PostDirectory, "image_names", autospec=True, side_effect=image_names):
            self.service.delete_post("600,601,602")

        self.assertEqual(sorted(os.listdir(self.posts_dir)), ["601.md"])
        self.assertEqual(self.git.removed, ["content/posts/600.md", "content/posts/602.md"])
        self.assertEqual(self.git.commits, ["Delete post(s): 600,601,602"])

    def test_delete_directory_holding_only_index(self):
        unit = self.posts_dir / "9"
        unit.mkdir(parents=True)
        (unit / "index.md").write_text("post 9\n")
        self.make_loose(10)

        self.service.delete_post("9,10")

        self.assertEqual(os.listdir(self.posts_dir), [])
        self.assertEqual(self.git.removed, ["content/posts/9/index.md", "content/posts/10.md"])
        self.assertEqual(self.git.commits, ["Delete post(s): 9,10"])

class TestLocatePost(PostStoreTestCase):
    """Test cases for locating the post an edit would land on."""

    def test_locate_shapes(self):
        self.make_loose(100)
        self.service.create_post(Post(200, content="x", date=DATE), [PNG])

        self.assertEqual(self.service.locate_post(101), {
            "requested_id": 101, "id": 100, "shape": "file",
            "path": os.path.join("content", "posts", "100.md"), "images": [],
        })
        located = self.service.locate_post(199)
        self.assertEqual(located["id"], 200)
        self.assertEqual(located["shape"], "directory")
        self.assertEqual(located["images"], ["image_0.png"])

    def test_locate_missing(self):
        self.assertEqual(self.service.locate_post(5)["shape"], "missing")

if __name__ == '__main__':
    unittest.main()
