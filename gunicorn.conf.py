"""
Gunicorn configuration for the Momentum engine API.

Env vars that override defaults:
  PORT     — TCP port to bind (default: 8000)
  WORKERS  — number of worker processes (default: 2)
  TIMEOUT  — seconds before a silent worker is killed (default: 60)
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# Snapshot requests fan out on threads inside each worker, so a few
# processes go a long way.
workers = int(os.environ.get("WORKERS", "2"))

worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5

# Collaborator reads time out after a few seconds; anything slower is stuck.
timeout = int(os.environ.get("TIMEOUT", "60"))

# Application logs are JSON lines from structlog; keep gunicorn on stdout too.
loglevel = "info"
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

graceful_timeout = 30

wsgi_app = "momentum.main:app"
