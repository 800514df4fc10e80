#!/usr/bin/env python3
"""Backdrop Station — Web API mode.

Serves the rotator and the wallpaper sources over a small Flask JSON API,
with an SSE stream of source state changes for a settings panel. The
asyncio side (rotation timer, source probes, state bus) runs on its own
event loop thread; request handlers hand coroutines to it and wait.

Usage:
    python3 web_app.py                     # http://0.0.0.0:5000
    python3 web_app.py --port 8080
    python3 web_app.py --config other.yaml --log-level DEBUG
"""

__version__ = "1.0.0"

import argparse
import asyncio
import json
import logging
import queue
import threading
import uuid

from flask import Flask, Response, jsonify, request

import config
from core.event_bus import StateSubscriber
from core.models import SourceConfig
from core.runtime import BackdropRuntime
from core.settings_store import YamlSettingsStore
from core.style import resolve_style
from sources import build_registry

logger = logging.getLogger(__name__)

SSE_KEEPALIVE_SECONDS = 15
LOOP_CALL_TIMEOUT = 60


class LoopThread:
    """An asyncio event loop running forever in a daemon thread."""

    def __init__(self):
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, name="backdrop-loop", daemon=True)

    def _run(self):
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def start(self):
        self._thread.start()
        return self

    def call(self, coro, timeout: float = LOOP_CALL_TIMEOUT):
        """Run coro on the loop and block until it finishes."""
        return asyncio.run_coroutine_threadsafe(coro, self.loop).result(timeout)

    def stop(self):
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout=5)
        self.loop.close()


def format_sse(event: str, data) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


def _background_payload(runtime: BackdropRuntime):
    background = runtime.rotator.background
    style = resolve_style(background, runtime.settings) if background is not None else None
    return {
        "enabled": runtime.settings.enabled,
        "mode": runtime.rotator.mode.value,
        "background": background.to_dict() if background else None,
        "style": style.to_dict() if style else None,
    }


def _source_payload(runtime: BackdropRuntime, source_config: SourceConfig):
    state = runtime.manager.state_of(source_config.id)
    return {
        "config": source_config.to_dict(),
        "supported": source_config.type in runtime.registry,
        "state": state.to_dict() if state else None,
    }


def create_app(runtime: BackdropRuntime, loop_thread: LoopThread):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    rotator = runtime.rotator
    manager = runtime.manager
    streams = {}  # scope_id -> queue.Queue of (source_id, state)

    def subscribe_stream(scope_id, events, source_id):
        runtime.bus.subscribe(
            StateSubscriber(source_id, scope_id, "sse"),
            lambda state: events.put((source_id, state)),
        )

    # ─── Routes: Background ───

    @app.route("/api/background")
    def current_background():
        return jsonify(_background_payload(runtime))

    @app.route("/api/background/next", methods=["POST"])
    def next_background():
        loop_thread.call(rotator.next_background())
        return jsonify(_background_payload(runtime))

    @app.route("/api/background/random", methods=["POST"])
    def random_background():
        background = loop_thread.call(rotator.apply_random_wallpaper())
        if background is None:
            return jsonify({"error": "No background available"}), 404
        return jsonify(_background_payload(runtime))

    @app.route("/api/background/test", methods=["POST"])
    def test_background():
        """Apply the background of the time rule in effect right now."""
        rule, background = loop_thread.call(rotator.apply_current_rule())
        return jsonify({
            "rule": rule.to_dict() if rule else None,
            "background": background.to_dict() if background else None,
        })

    @app.route("/api/mode", methods=["PUT"])
    def set_mode():
        data = request.get_json(silent=True) or {}
        try:
            if "interval_minutes" in data:
                loop_thread.call(rotator.set_interval(float(data["interval_minutes"])))
            if "mode" in data:
                loop_thread.call(rotator.set_mode(data["mode"]))
        except (TypeError, ValueError) as exc:
            return jsonify({"error": str(exc)}), 400
        return jsonify(_background_payload(runtime))

    @app.route("/api/toggle", methods=["POST"])
    def toggle():
        enabled = loop_thread.call(rotator.toggle())
        return jsonify({"enabled": enabled})

    # ─── Routes: Sources ───

    @app.route("/api/sources")
    def list_sources():
        return jsonify({
            "sources": [_source_payload(runtime, c) for c in runtime.settings.wallpaper_sources],
        })

    @app.route("/api/sources", methods=["POST"])
    def add_source():
        data = request.get_json(silent=True) or {}
        if not data.get("type"):
            return jsonify({"error": "type required"}), 400
        source_config = SourceConfig.from_dict(data)
        source = loop_thread.call(runtime.add_source(source_config))
        if source is None:
            error = manager.last_error
            return jsonify({
                "error": error.message if error else "Could not create source",
                "errors": error.details.get("errors", []) if error else [],
            }), 400

        async def subscribe_streams():
            for scope_id, events in list(streams.items()):
                subscribe_stream(scope_id, events, source.id)
                events.put((source.id, manager.state_of(source.id)))

        loop_thread.call(subscribe_streams())
        return jsonify(_source_payload(runtime, source.config)), 201

    @app.route("/api/sources/<source_id>/enable", methods=["POST"])
    def enable_source(source_id):
        if manager.get_source(source_id) is None:
            return jsonify({"error": f"Unknown source {source_id}"}), 404
        ok = loop_thread.call(runtime.enable_source(source_id))
        state = manager.state_of(source_id)
        return jsonify({"ok": ok, "state": state.to_dict() if state else None}), (200 if ok else 502)

    @app.route("/api/sources/<source_id>/disable", methods=["POST"])
    def disable_source(source_id):
        if manager.get_source(source_id) is None:
            return jsonify({"error": f"Unknown source {source_id}"}), 404
        loop_thread.call(runtime.disable_source(source_id))
        return jsonify({"ok": True, "state": manager.state_of(source_id).to_dict()})

    @app.route("/api/sources/<source_id>", methods=["DELETE"])
    def delete_source(source_id):
        if not loop_thread.call(runtime.remove_source(source_id)):
            return jsonify({"error": f"Unknown source {source_id}"}), 404
        return jsonify({"deleted": source_id})

    @app.route("/api/source-types")
    def source_types():
        registry = runtime.registry
        return jsonify({"types": [registry.describe(t) for t in registry.types()]})

    # ─── Routes: Source state SSE stream ───

    @app.route("/api/sources/stream")
    def source_stream():
        """SSE endpoint streaming source state changes."""
        scope_id = f"web-{uuid.uuid4().hex[:8]}"
        events = queue.Queue()

        async def subscribe_all():
            streams[scope_id] = events
            for source in manager.all_sources():
                subscribe_stream(scope_id, events, source.id)

        async def unsubscribe_all():
            streams.pop(scope_id, None)
            return runtime.bus.cleanup_by_scope(scope_id)

        loop_thread.call(subscribe_all())
        logger.info("SSE client %s connected", scope_id)

        def generate():
            try:
                while True:
                    try:
                        source_id, state = events.get(timeout=SSE_KEEPALIVE_SECONDS)
                    except queue.Empty:
                        yield ": keepalive\n\n"
                        continue
                    yield format_sse("state", {"source_id": source_id, **state.to_dict()})
            finally:
                loop_thread.call(unsubscribe_all())
                logger.info("SSE client %s disconnected", scope_id)

        return Response(
            generate(),
            mimetype="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "X-Accel-Buffering": "no",
                "Connection": "keep-alive",
            },
        )

    return app


def main():
    parser = argparse.ArgumentParser(description="Backdrop Station Web API")
    parser.add_argument("--port", type=int, default=5000, help="Web server port")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    parser.add_argument("--config", default=config.DEFAULT_SETTINGS_PATH, help="Settings file path")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s  %(levelname)-7s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )

    logger.info("Backdrop Station Web v%s starting", __version__)

    runtime = BackdropRuntime(YamlSettingsStore(args.config), build_registry())
    loop_thread = LoopThread().start()
    loop_thread.call(runtime.start())

    app = create_app(runtime, loop_thread)
    logger.info("Web API at http://%s:%d", args.host, args.port)

    try:
        app.run(host=args.host, port=args.port, threaded=True, debug=False)
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        loop_thread.call(runtime.stop())
        loop_thread.stop()
        logger.info("Shutdown complete")


if __name__ == "__main__":
    main()
