"""
SHOT CLOCK - a countdown kept in sync across every screen in the room

Usage:
    python main.py server [--host HOST] [--port PORT] [--config-dir DIR]
    python main.py client ws://localhost:8080/court1?pin=1234 [--watch]
"""
import sys
from typing import List, Optional


USAGE = __doc__.strip().split("Usage:", 1)[1]


def main(argv: Optional[List[str]] = None) -> int:
    """Dispatch to the server or client entry point."""
    argv = sys.argv[1:] if argv is None else argv

    if not argv or argv[0] not in ("server", "client"):
        print("Usage:" + USAGE)
        return 2

    if argv[0] == "server":
        from server.main import main as server_main
        return server_main(argv[1:])

    from client.main import main as client_main
    return client_main(argv[1:])


if __name__ == "__main__":
    sys.exit(main())
