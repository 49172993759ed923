"""Start the knowledge base API with uvicorn."""

import socket
import sys

from dotenv import load_dotenv
load_dotenv()

from kb_assist.api.config import settings
from kb_assist.api.logging_config import setup_logging
setup_logging(settings.log_dir, settings.log_level)


def is_port_in_use(port):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        return s.connect_ex(('localhost', port)) == 0


if __name__ == "__main__":
    port = settings.api_port

    if is_port_in_use(port):
        print(f"Port {port} is already in use.")
        print("Stop the process holding it or change API_PORT in .env")
        sys.exit(1)

    print("=" * 80)
    print(f"Starting server: http://{settings.api_host}:{port}")
    print("=" * 80)

    import uvicorn

    try:
        uvicorn.run(
            "kb_assist.api.main:app",
            host=settings.api_host,
            port=port,
            log_level=settings.log_level.lower(),
            access_log=True,
        )
    except KeyboardInterrupt:
        print("\n\nServer stopped")
