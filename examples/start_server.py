"""
Tab Grouper Backend Server Entry Point

Starts the FastAPI server for the tab grouper backend.

Usage:
    uv run python examples/start_server.py
"""

import sys

from tab_grouper.config import get_settings, setup_logging


def main():
    """Start the FastAPI server."""

    print("=" * 80)
    print("Tab Grouper Backend Server")
    print("=" * 80)
    print()

    # Verify configuration
    try:
        settings = get_settings()
        setup_logging(settings.log_level)
        print("✓ Configuration loaded")
        print(f"  - OpenAI Model: {settings.openai_llm_model}")
        print(f"  - Embedding Model: {settings.openai_embedding_model}")
        print(f"  - Cache: {settings.cache_db_path or 'in-memory'}")
        print(f"  - API key configured: {bool(settings.openai_api_key)}")
        print()
    except Exception as e:
        print(f"✗ Configuration error: {e}")
        print()
        print("Please ensure you have a .env file with OPENAI_API_KEY set.")
        sys.exit(1)

    # Start server
    print("Starting FastAPI server...")
    print("Server will be available at: http://localhost:8000")
    print("API documentation: http://localhost:8000/docs")
    print()
    print("Press Ctrl+C to stop the server")
    print("=" * 80)
    print()

    import uvicorn
    from tab_grouper.server.app import app

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level="info",
        reload=False,
    )


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\n\nServer stopped by user")
        sys.exit(0)
