"""Server entry point for the Focusphere assistant API."""

import os

import uvicorn


def main():
    """Run the FastAPI server."""
    uvicorn.run(
        "focusphere.api:app",
        host=os.getenv("FOCUSPHERE_HOST", "0.0.0.0"),
        port=int(os.getenv("FOCUSPHERE_PORT", "8080")),
        reload=os.getenv("FOCUSPHERE_RELOAD", "false").lower() == "true",
        log_level="info",
    )


if __name__ == "__main__":
    main()
