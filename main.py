# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
# 
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

# Development server. In production run gunicorn with gunicorn.conf.py.

import argparse
from datetime import datetime

from postpal import set_log_level
from postpal.config import Config
from postpal.server import create_app

def main():
    config = Config()
    parser = argparse.ArgumentParser(
        prog = "postpal",
        description = "Publish channel posts to a Zola site repository.",
        epilog = f"Copyright (c) {datetime.now().year} Damien Boisvert (AlphaGameDeveloper). This software is released under the MIT License. https://opensource.org/licenses/MIT"
    )
    parser.add_argument("--host", type=str, default=config.HOST, help=f"Address to listen on (default: {config.HOST})")
    parser.add_argument("--port", type=int, default=config.PORT, help=f"Port to listen on (default: {config.PORT})")
    parser.add_argument("--verbose", "-v", action="store_true", default=config.VERBOSE, help="Enable debug logging")
    parser.add_argument("--no-sync", action="store_true", help="Skip cloning/pulling the site repository on startup")
    args = parser.parse_args()

    config.VERBOSE = args.verbose
    if args.no_sync:
        config.SYNC_ON_STARTUP = False
    set_log_level(config.VERBOSE)

    app = create_app(config)
    app.run(args.host, args.port, debug=config.DEBUG)

if __name__ == "__main__":
    main()
