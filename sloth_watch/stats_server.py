"""
Statistics Server for Sloth Watch.

A simple Flask server that answers the "!command" statistics queries:
1. Receives the command text (e.g. from a chat bot relay)
2. Runs it against the stat event log in Supabase
3. Returns the plain-text reply

Run this server alongside the scheduler.
"""

import logging
from flask import Flask, abort, request

from .commands import handle_command
from .db import get_db
from .statistics import Statistics

logger = logging.getLogger(__name__)

app = Flask(__name__)


def get_statistics() -> Statistics:
    """Statistics over the Supabase log, created on first use (tests may preset app.config)."""
    stats = app.config.get("STATISTICS")
    if stats is None:
        stats = Statistics(get_db())
        app.config["STATISTICS"] = stats
    return stats


@app.route("/command", methods=["POST"])
def command():
    """
    Answer a statistics command.

    Body: {"text": "!topdeaths week"}
    Returns: {"reply": "..."}; 404 for text that is not a known command
    """
    payload = request.get_json(silent=True) or {}
    text = (payload.get("text") or "").strip()
    if not text:
        abort(400)

    reply = handle_command(text, get_statistics())
    if reply is None:
        logger.info(f"Not a command: {text}")
        abort(404)

    return {"reply": reply}


@app.route("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


def run_server(host: str = "0.0.0.0", port: int = 5000, debug: bool = False):
    """Run the Flask server."""
    app.run(host=host, port=port, debug=debug)


def main():
    """CLI entry point for the statistics server."""
    import argparse

    parser = argparse.ArgumentParser(description="Sloth Watch Statistics Server")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to")
    parser.add_argument("--port", type=int, default=5000, help="Port to bind to")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )

    logger.info(f"Starting statistics server on {args.host}:{args.port}")
    run_server(args.host, args.port, args.debug)


if __name__ == "__main__":
    main()
