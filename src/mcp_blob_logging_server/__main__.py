"""Module entrypoint.

Allows:
    python -m mcp_blob_logging_server
"""

from __future__ import annotations

from mcp_blob_logging_server.server.log_server import main

if __name__ == "__main__":
    main()
