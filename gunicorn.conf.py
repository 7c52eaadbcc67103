"""
Gunicorn configuration for TallTales application.
Optimized for Socket.IO with eventlet workers.
"""

import logging
import sys

from config_factory import load_config


def on_starting(server):
    """
    Server hook that runs when the master process is starting.
    Checks the room store is reachable before workers are forked.
    """
    from src.config.game_settings import GameSettings
    from src.store.room_store import create_room_store

    logger = logging.getLogger(__name__)
    settings = GameSettings(load_config())
    logger.info(f"Checking {settings.store_backend} room store before starting workers...")
    if not create_room_store(settings).ping():
        logger.critical("FATAL: Room store is unreachable. Server shutting down.")
        sys.exit(1)


# Load configuration (renamed to avoid conflicts with gunicorn's internal 'config')
app_config = load_config()

# Server socket
bind = f"{app_config.host}:{app_config.port}"
backlog = 2048

# Worker processes
workers = 1  # Must be 1 for Socket.IO with eventlet
worker_class = "eventlet"
worker_connections = app_config.worker_connections
timeout = app_config.timeout
keepalive = app_config.keepalive

# Restart workers after this many requests, to help prevent memory leaks
max_requests = 2000
max_requests_jitter = 100

# Logging
accesslog = "-"
errorlog = "-"
loglevel = app_config.log_level
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s"'

# Process naming
proc_name = "talltales"

# Server mechanics
preload_app = False  # Don't preload for Socket.IO
daemon = False
