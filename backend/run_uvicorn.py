#!/usr/bin/env python3
"""
Uvicorn runner script for Starbridge.
This script ensures proper environment setup and starts the Socket.IO-wrapped
FastAPI server for the bridge operations namespace.
"""

import os
import sys
import uvicorn
from pathlib import Path

def main():
    """Start the Socket.IO-wrapped FastAPI application with uvicorn."""

    print("Starting uvicorn runner...")

    backend_root = Path(__file__).parent
    src_dir = backend_root / "src"

    print(f"Backend root: {backend_root}")
    print(f"Source directory: {src_dir}")

    if str(src_dir) not in sys.path:
        sys.path.insert(0, str(src_dir))

    # Import the Socket.IO-wrapped FastAPI app
    try:
        print("Importing Socket.IO app...")
        from starbridge.api.app import socket_app  # noqa: F401
        print("Socket.IO app imported successfully")
    except ImportError as e:
        print(f"Error importing Socket.IO app: {e}")
        print(f"Python path: {sys.path}")
        sys.exit(1)

    print("Starting uvicorn server...")

    # Start uvicorn server using import string for reload support
    port = int(os.getenv("PORT", "8000"))
    reload = os.getenv("ENVIRONMENT", "development").lower() != "production"

    uvicorn.run(
        "starbridge.api.app:socket_app",
        host="0.0.0.0",
        port=port,
        reload=reload,
        reload_dirs=[str(src_dir)],
        reload_includes=["*.py"],
        log_level="info"
    )

if __name__ == "__main__":
    main()
