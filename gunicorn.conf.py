"""Gunicorn settings for the booking API."""

import os

bind = os.environ.get('GUNICORN_BIND', '0.0.0.0:8000')

# Each worker keeps its own availability cache; entries are checked against
# availability_versions in the database, so workers never serve stale slots.
# SQLite has one writer at a time, so a few threaded workers are enough.
workers = int(os.environ.get('GUNICORN_WORKERS', 2))
threads = int(os.environ.get('GUNICORN_THREADS', 4))
worker_class = 'gthread'

# A booking write waits up to the SQLite busy timeout, well under this
timeout = 60
graceful_timeout = 30
keepalive = 5

log_dir = os.environ.get('LOG_DIR', 'logs')
accesslog = os.path.join(log_dir, 'gunicorn-access.log')
errorlog = os.path.join(log_dir, 'gunicorn-error.log')
loglevel = os.environ.get('LOG_LEVEL', 'info')
access_log_format = '%(h)s %(t)s "%(r)s" %(s)s %(b)s %(D)s'

proc_name = 'drewno'
preload_app = True

max_requests = 1000
max_requests_jitter = 50

limit_request_line = 4094
limit_request_fields = 50


def on_starting(server):
    os.makedirs(log_dir, exist_ok=True)
