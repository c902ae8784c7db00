"""
Gunicorn configuration for production deployment.

Usage:
    gunicorn -c gunicorn_config.py
"""

import multiprocessing

from src.kaidan.config import get_env_int, get_env_str

wsgi_app = "app:create_app()"

# Server socket
bind = get_env_str('GUNICORN_BIND', '0.0.0.0:5000')
backlog = 2048

# Worker processes; SQLite writes serialize, so a handful is plenty
workers = get_env_int('GUNICORN_WORKERS', min(multiprocessing.cpu_count() * 2 + 1, 4), min_value=1, max_value=100)
worker_class = 'sync'
# Long-text extraction makes several LLM calls in one request
timeout = get_env_int('GUNICORN_TIMEOUT', 180, min_value=1, max_value=3600)
graceful_timeout = 30
keepalive = 5

# Logging
accesslog = get_env_str('GUNICORN_ACCESS_LOG', '-')  # '-' means stdout
errorlog = get_env_str('GUNICORN_ERROR_LOG', '-')  # '-' means stderr
loglevel = get_env_str('GUNICORN_LOG_LEVEL', 'info', allowed_values=['debug', 'info', 'warning', 'error', 'critical'])
# Request bodies carry source texts, so only the request line is logged
access_log_format = '%(h)s %(t)s "%(r)s" %(s)s %(b)s %(D)s'

proc_name = 'kaidan'
daemon = False
preload_app = True
