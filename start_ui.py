"""
Break It Down UI Launcher

Starts the web server for the task list.

Usage:
    python start_ui.py
    python start_ui.py --port 8550
    python start_ui.py --host 0.0.0.0 --port 9000
"""

import argparse
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))


def main():
    from break_it_down.config import AppConfig, ConfigProperties

    ConfigProperties.load_env_file()
    config = AppConfig.from_env()

    parser = argparse.ArgumentParser(description="Break It Down Web UI")
    parser.add_argument("--host", default=config.host, help=f"Host to bind (default: {config.host})")
    parser.add_argument("--port", type=int, default=config.port, help=f"Port to bind (default: {config.port})")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    args = parser.parse_args()

    try:
        import uvicorn
    except ImportError:
        print("Error: uvicorn is required. Install it with:")
        print("  pip install uvicorn[standard]")
        sys.exit(1)

    if config.auth_backend == "local" and not config.local_users:
        print("Warning: no local accounts configured. Set BID_LOCAL_USERS=email:password")

    print(f"""
==========================================================
  Break It Down
  Tasks:       http://{args.host}:{args.port}/app
  Sign in:     http://{args.host}:{args.port}/login
  AI health:   http://{args.host}:{args.port}/api/debug/ai
  Store: {config.store_backend}   Auth: {config.auth_backend}
==========================================================
    """)

    uvicorn.run(
        "ui.server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
