# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
# 
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

import threading
import queue
import logging
import time
import requests
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

logger = logging.getLogger(__name__)

LEVEL_COLORS = {
    'info': 0x0099ff,
    'warning': 0xffaa00,
    'error': 0xff0000,
    'critical': 0x990000,
}

ACTION_COLORS = {
    'created': 0x2ecc71,
    'edited': 0x3498db,
    'deleted': 0xe74c3c,
    'published': 0x9b59b6,
}

class DiscordNotifier:
    """
    Non-blocking Discord webhook notifier for publishing events and diagnostics.

    Payloads are queued and sent by a daemon worker thread so request handlers
    never wait on Discord. Without a webhook URL the notifier is disabled and no
    thread is started.
    """

    def __init__(self, webhook_url: Optional[str] = None, max_retries: int = 3,
                 backoff_base: float = 1.0, timeout: float = 10):
        self.webhook_url = webhook_url
        self.enabled = bool(webhook_url)
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.timeout = timeout

        self.notification_queue: "queue.Queue[Dict[str, Any]]" = queue.Queue()
        self._worker_thread: Optional[threading.Thread] = None
        self._stop_worker = threading.Event()

        if self.enabled:
            self._worker_thread = threading.Thread(
                target=self._worker_loop,
                daemon=True,
                name="DiscordNotificationWorker"
            )
            self._worker_thread.start()
            logger.info("Discord notifications enabled")
        else:
            logger.warning("No Discord webhook URL provided. Notifications will be disabled.")

    def _worker_loop(self):
        while not self._stop_worker.is_set():
            try:
                payload = self.notification_queue.get(timeout=0.5)
            except queue.Empty:
                continue

            try:
                if not self._send_with_retry(payload):
                    logger.error(f"Failed to send Discord notification after all retries: {payload}")
            except Exception as e:
                logger.error(f"Error in Discord notification worker: {e}", exc_info=True)
            finally:
                self.notification_queue.task_done()

    def _send_with_retry(self, payload: Dict[str, Any]) -> bool:
        """Send one payload. Returns False when every attempt failed."""
        for attempt in range(self.max_retries + 1):
            try:
                response = requests.post(self.webhook_url, json=payload, timeout=self.timeout)
            except requests.exceptions.RequestException as e:
                logger.warning(f"Network error sending Discord notification (attempt {attempt + 1}): {e}")
                time.sleep(self.backoff_base * (2 ** attempt))
                continue

            if response.status_code == 429:
                try:
                    retry_after = float(response.json().get('retry_after', 1.0))
                except (ValueError, AttributeError):
                    retry_after = 1.0
                logger.warning(f"Discord rate limited, waiting {retry_after:.2f}s before retry")
                time.sleep(retry_after)
                continue

            if response.ok:
                logger.debug("Discord notification sent successfully")
                return True

            logger.error(f"Discord webhook error {response.status_code}: {response.text}")
            if 400 <= response.status_code < 500:
                return True  # Client errors are dropped
            time.sleep(self.backoff_base * (2 ** attempt))

        return False

    def _enqueue(self, payload: Dict[str, Any]):
        if not self.enabled:
            logger.debug("Discord notifications disabled")
            return
        self.notification_queue.put(payload)

    def send_plaintext(self, message: str, username: Optional[str] = None):
        """Send a plain text message to Discord (non-blocking)."""
        payload: Dict[str, Any] = {'content': message}
        if username:
            payload['username'] = username
        self._enqueue(payload)

    def send_embed(self, title: str, description: Optional[str] = None, color: int = 0x00ff00,
                   fields: Optional[List[Dict[str, Any]]] = None, footer: Optional[str] = None):
        embed: Dict[str, Any] = {
            'title': title,
            'color': color,
            'timestamp': datetime.now(timezone.utc).isoformat(),
        }
        if description:
            embed['description'] = description
        if fields:
            embed['fields'] = fields
        if footer:
            embed['footer'] = {'text': footer}
        self._enqueue({'embeds': [embed]})

    def send_diagnostic(self, level: str, service: str, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Send a diagnostic notification.

        Args:
            level: 'info', 'warning', 'error' or 'critical'
            service: Name of the component reporting
            message: The diagnostic message
            details: Extra key/value pairs shown as embed fields
        """
        fields = [
            {'name': 'Service', 'value': service, 'inline': True},
            {'name': 'Level', 'value': level.upper(), 'inline': True},
        ]
        for key, value in (details or {}).items():
            fields.append({'name': key, 'value': str(value)[:1024], 'inline': False})

        self.send_embed(
            title=f"PostPal Diagnostic - {level.upper()}",
            description=message,
            color=LEVEL_COLORS.get(level.lower(), 0x808080),
            fields=fields,
            footer='PostPal Diagnostics',
        )

    def send_post_event(self, action: str, post_id, details: Optional[Dict[str, Any]] = None):
        """Announce that a post was created, edited, deleted or published."""
        fields = [{'name': key, 'value': str(value)[:1024], 'inline': True} for key, value in (details or {}).items()]
        self.send_embed(
            title=f"Post {post_id} {action}",
            color=ACTION_COLORS.get(action, 0x808080),
            fields=fields,
            footer='PostPal',
        )

    def shutdown(self):
        """Flush the queue and stop the worker thread."""
        if self._worker_thread is None:
            return
        logger.info("Shutting down Discord notifier")
        self.notification_queue.join()
        self._stop_worker.set()
        self._worker_thread.join(timeout=5.0)

    def is_healthy(self) -> bool:
        return (self.enabled and
                self._worker_thread is not None and
                self._worker_thread.is_alive() and
                not self._stop_worker.is_set())

    def get_queue_size(self) -> int:
        return self.notification_queue.qsize()
