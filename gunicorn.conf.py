"""
Production Server Configuration

Run FastAPI with Uvicorn workers under Gunicorn for production deployment.
"""

import multiprocessing
import os

# Server socket
bind = os.getenv("BIND", "0.0.0.0:8000")
backlog = 2048

# Worker processes
workers = int(os.getenv("WORKERS", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
max_requests = 10000
max_requests_jitter = 1000
timeout = 60
keepalive = 5
graceful_timeout = 30

# Process naming
proc_name = "storefront-api"

# Logging: structlog formats application records, gunicorn only reports errors
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
accesslog = None
