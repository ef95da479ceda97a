import argparse
import socket
import sys

import uvicorn

from .app import app
from .core.config import get_settings


def is_port_available(host: str, port: int) -> bool:
    """Check whether host:port can be bound."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind((host, port))
        except OSError:
            return False
        return True


def main():
    settings = get_settings()

    parser = argparse.ArgumentParser(
        prog="psd-server",
        description="psd-server: HTTP API for converting PSD files into Figma designs",
    )
    parser.add_argument(
        "--host", default=settings.host, help=f"Host to bind to (default: {settings.host})"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.port,
        help=f"Port to bind to (default: {settings.port})",
    )
    args = parser.parse_args()

    if not is_port_available(args.host, args.port):
        print(f"Error: Port {args.port} is already in use.")
        print("Try using a different port:")
        print(f"  psd-server --port {args.port + 1}")
        sys.exit(1)

    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
