"""
Gunicorn configuration for the habit engine.

Env vars that override defaults:
  PORT       — TCP port to bind
  WORKERS    — number of worker processes (default: 2)
  LOG_LEVEL  — gunicorn error-log level (default: info)
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# Each worker opens its own SQLAlchemy pool (pool_size 5 + overflow 10).
workers = int(os.environ.get("WORKERS", "2"))

# Each worker runs Uvicorn's ASGI event loop inside Gunicorn's process manager.
worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5
timeout = 120

# stdout only; the app's own loggers share the same stream.
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

# Graceful restart: wait up to 30 s for in-flight requests to finish.
graceful_timeout = 30
