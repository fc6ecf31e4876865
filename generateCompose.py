#!/usr/bin/env python3

import yaml
from os import getenv as _
from dotenv import load_dotenv
from datetime import datetime
from sys import argv

imageVersion = (
    argv[1] if len(argv) > 1 else "latest"
)
load_dotenv(dotenv_path="postpal.env")

# === CONFIGURATION ===
# Mutations share one git working tree, so there is exactly one backend.
posts_subdir = _("POSTS_SUBDIR", "content/posts")
repo_branch = _("REPO_BRANCH", "main")

compose = {
    'services': {
        'postpal': {
            'image': f'alphagamedev/postpal:{imageVersion}',
            'hostname': 'postpal',
            'container_name': 'postpal',
            'restart': 'unless-stopped',
            'command': ['gunicorn', '-c', 'gunicorn.conf.py', 'postpal.server:create_app()'],
            'environment': {
                'REPO_DIR': '/data/site',
                'REPO_URL': _("REPO_URL"),
                'REPO_BRANCH': repo_branch,
                'GIT_AUTH_TOKEN': _("GIT_AUTH_TOKEN"),
                'GIT_AUTHOR_NAME': _("GIT_AUTHOR_NAME", "PostPal"),
                'GIT_AUTHOR_EMAIL': _("GIT_AUTHOR_EMAIL", "postpal@localhost"),
                'POSTS_SUBDIR': posts_subdir,
                'CHANNEL_ID': _("CHANNEL_ID", "postpal"),
                'API_KEY': _("API_KEY"),
                'DISCORD_WEBHOOK_URL': _("DISCORD_WEBHOOK_URL"),
            },
            'volumes': ['site_repo:/data/site'],
            'ports': ['8000:8000'],
            'healthcheck': {
                'test': ['CMD', 'curl', '-A', f"HealthcheckChecker/1 (compatible; PostPal/{imageVersion})", '-f', 'http://localhost:8000/healthcheck'],
                'interval': '30s',
                'timeout': '10s',
                'retries': 5
            },
        }
    },
    'volumes': {
        'site_repo': {}
    },
}

# === OUTPUT ===
with open('docker-compose.yml', 'w') as f:
    f.write(f"# generated at: {datetime.now().isoformat()}\n")
    yaml.dump(compose, f, default_flow_style=False)

print(f"docker-compose.yml generated for postpal:{imageVersion} ({repo_branch}, {posts_subdir}).")
