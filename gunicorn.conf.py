"""
Gunicorn configuration for the rewards API.
"""
import os

bind = f"0.0.0.0:{os.getenv('PORT', '8080')}"

# Settlement holds one transaction per customer, sync workers are enough
workers = int(os.getenv('GUNICORN_WORKERS', '2'))
worker_class = 'sync'
timeout = int(os.getenv('GUNICORN_TIMEOUT', '120'))
keepalive = 5

# Logging
accesslog = '-'
errorlog = '-'
loglevel = os.getenv('LOG_LEVEL', 'info')
capture_output = True

proc_name = 'b2b-rewards'
preload_app = True
graceful_timeout = 30


def on_starting(server):
    print("[Gunicorn] Starting b2b-rewards server...")


def on_exit(server):
    print("[Gunicorn] b2b-rewards server shutting down...")
