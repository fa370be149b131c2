#!/usr/bin/env python
"""
Server Entry Point

Usage:
    Development:  python run_server.py --dev
    Production:   python run_server.py

    Or with Gunicorn:
    gunicorn src.main:app -c gunicorn.conf.py
"""

import argparse
import os
import subprocess

import uvicorn

from src.config import get_settings


def run_dev_server(port: int):
    """Run development server with auto-reload."""
    uvicorn.run(
        "src.main:app",
        host="127.0.0.1",
        port=port,
        reload=True,
        reload_dirs=["src"],
        log_level="debug",
    )


def run_prod_server(port: int):
    """Run production server with Uvicorn directly."""
    settings = get_settings()
    uvicorn.run(
        "src.main:app",
        host=settings.api_host,
        port=port,
        workers=settings.api_workers,
        log_level=settings.monitoring.log_level.lower(),
        proxy_headers=True,
        forwarded_allow_ips="*",
        server_header=False,
    )


def run_gunicorn(port: int):
    """Run with Gunicorn (recommended for production)."""
    env = dict(os.environ, BIND=f"0.0.0.0:{port}")
    subprocess.run(["gunicorn", "src.main:app", "-c", "gunicorn.conf.py"], env=env, check=True)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Storefront API Server")
    parser.add_argument("--dev", action="store_true", help="Run in development mode with auto-reload")
    parser.add_argument("--gunicorn", action="store_true", help="Run with Gunicorn (production)")
    parser.add_argument("--port", type=int, default=get_settings().api_port, help="Port to run on")

    args = parser.parse_args()

    if args.dev:
        run_dev_server(args.port)
    elif args.gunicorn:
        run_gunicorn(args.port)
    else:
        run_prod_server(args.port)
