# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""
Locust load testing configuration for PostPal.

Posts are created with publish=false so a load run never pushes to the site
remote. Deletes are left out: delete always commits and pushes. Point it at a
throwaway REPO_DIR:

    API_KEY=... locust -f locustfile.py --host http://localhost:8000
"""

from locust import HttpUser, task, between
import os
import random

API_KEY = os.getenv("API_KEY", "")

# Smallest valid PNG header; the server only looks at the magic number
FAKE_PNG = b"\x89PNG\r\n\x1a\n" + bytes(64)

def random_content():
    words = ["gm", "launch", "update", "thread", "chart", "news", "airdrop", "release"]
    body = " ".join(random.choices(words, k=random.randint(3, 12)))
    if random.random() < 0.3:
        body += f"\n0x{random.getrandbits(160):040x}"
    return body

class ChannelMirrorUser(HttpUser):
    """Behaves like the relay that mirrors a channel: mostly creates, some edits and lookups."""
    wait_time = between(1, 5)

    def on_start(self):
        self.headers = {"Authorization": f"Bearer {API_KEY}"}
        # Ids far apart per user so nearest-id edits stay inside this user's posts
        self.base_id = random.randint(1, 10_000) * 1_000
        self.next_id = self.base_id
        self.created = []

    @task(10)
    def create_post(self):
        post_id = self.next_id
        self.next_id += 1
        files = {"media": ("photo.png", FAKE_PNG, "image/png")} if random.random() < 0.4 else None
        response = self.client.post(
            "/api/posts",
            data={"id": str(post_id), "content": random_content(), "publish": "false"},
            files=files,
            headers=self.headers,
            name="/api/posts [create]",
        )
        if response.status_code == 201:
            self.created.append(post_id)

    @task(4)
    def edit_with_drifted_id(self):
        if not self.created:
            return
        requested = random.choice(self.created) + random.randint(0, 3)
        self.client.put(
            f"/api/posts/{requested}",
            data={"content": random_content(), "publish": "false"},
            headers=self.headers,
            name="/api/posts/[id] [edit]",
        )

    @task(3)
    def locate(self):
        post_id = self.base_id + random.randint(0, 50)
        self.client.get(f"/api/posts/{post_id}", headers=self.headers, name="/api/posts/[id] [locate]")

    @task(1)
    def healthcheck(self):
        self.client.get("/api/healthcheck")
