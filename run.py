#!/usr/bin/env python3
"""
Simple startup script for the native media service.
Run this file directly to serve a media folder over HTTP.

Usage:
    python3 run.py --root ~/Pictures
    python3 run.py --root ~/Pictures --port 8000
    python3 run.py --host 127.0.0.1 --port 5000 --reload
"""
import os
import logging
import argparse
import uvicorn

from mediacache import config


def main():
    """Start the native media service."""
    parser = argparse.ArgumentParser(description='Start the native media service')
    parser.add_argument('--root', default=config.MEDIA_ROOT,
                        help='Media folder to serve (default: $MEDIACACHE_ROOT or ~/Pictures)')
    parser.add_argument('--host', default=os.environ.get('HOST', '127.0.0.1'),
                        help='Host to bind to (default: 127.0.0.1)')
    parser.add_argument('--port', type=int, default=int(os.environ.get('PORT', '5000')),
                        help='Port to bind to (default: 5000)')
    parser.add_argument('--reload', action='store_true',
                        default=os.environ.get('RELOAD', 'false').lower() == 'true',
                        help='Enable auto-reload for development')
    parser.add_argument('--log-level', default=config.LOG_LEVEL,
                        choices=['critical', 'error', 'warning', 'info', 'debug', 'trace'],
                        help='Log level (default: info)')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.log_level == 'trace' else args.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # The app reads its root from the environment so reload workers see it too
    os.environ['MEDIACACHE_ROOT'] = os.path.expanduser(args.root)

    print(f"Serving {os.environ['MEDIACACHE_ROOT']} on {args.host}:{args.port}")
    uvicorn.run(
        "native_app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )


if __name__ == '__main__':
    main()
