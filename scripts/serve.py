#!/usr/bin/env python3
"""
Stack16 - Launch the API server.
Usage: python scripts/serve.py [--port 5000] [--reload]
"""
import os
import sys
import argparse

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def main():
    from stack16.config.settings import HOST, LOG_LEVEL, PORT

    parser = argparse.ArgumentParser(description="Serve the Stack16 API")
    parser.add_argument("--host", default=HOST)
    parser.add_argument("--port", type=int, default=PORT)
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development)")
    parser.add_argument("--log-level", default=LOG_LEVEL.lower(),
                        choices=["critical", "error", "warning", "info", "debug"])
    args = parser.parse_args()

    import uvicorn
    uvicorn.run(
        "stack16.app.server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
