"""
Gunicorn configuration for the tea shop backend.

Each worker holds its own config registry; after editing system_configs by
hand run `flask config refresh` or POST /api/config/refresh on every worker,
or restart.
"""
import os

bind = f"0.0.0.0:{os.getenv('PORT', '8080')}"

workers = int(os.getenv('GUNICORN_WORKERS', '2'))
worker_class = 'sync'
timeout = 60
keepalive = 5

# Logging
accesslog = '-'  # stdout
errorlog = '-'   # stderr
loglevel = os.getenv('LOG_LEVEL', 'info')
capture_output = True

proc_name = 'teashop'

# Registry is per process, so do not preload (each worker loads on first read)
preload_app = False

graceful_timeout = 30


def on_starting(server):
    print("[Gunicorn] Starting TeaShop server...")


def on_exit(server):
    print("[Gunicorn] TeaShop server shutting down...")
