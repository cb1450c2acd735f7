#!/usr/bin/env python3
"""Run the User Store API web server."""
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from dotenv import load_dotenv
load_dotenv()


def main():
    import uvicorn

    from userapi.config import get_server_config

    config = get_server_config()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    print(f"""
    ╔═══════════════════════════════════════════════════════╗
    ║           User Store API                              ║
    ╠═══════════════════════════════════════════════════════╣
    ║  URL: http://{config.host}:{config.port:<5}                            ║
    ║  API Docs: http://{config.host}:{config.port:<5}/docs                  ║
    ║  Hot Reload: {str(config.reload):<5}                              ║
    ╚═══════════════════════════════════════════════════════╝
    """)

    uvicorn.run(
        "server.app:app",
        host=config.host,
        port=config.port,
        reload=config.reload,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
