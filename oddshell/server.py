import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Optional

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse
from starlette.routing import Mount, Route, WebSocketRoute
from starlette.staticfiles import StaticFiles
from starlette.websockets import WebSocket, WebSocketDisconnect

from .config import Config
from .executor import PipelineResult, run_line
from .logs import setup_logging

log = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
FRONTEND_DIR = BASE_DIR / "frontend"


# chunks in flight between the pipeline thread and the websocket
QUEUE_SIZE = 16


class QueueWriter:
    """Binary sink handed to the forwarder; hops each chunk onto the event loop.

    write() blocks while the queue is full, so a slow client slows the
    forwarder instead of growing memory. Once the client is gone it raises
    BrokenPipeError, which stops the forwarder and lets the executor close
    the pipe and reap.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, queue: asyncio.Queue):
        self.loop = loop
        self.queue = queue
        self.closed = False

    def put(self, item: Optional[bytes]) -> None:
        asyncio.run_coroutine_threadsafe(self.queue.put(item), self.loop).result()

    def write(self, data: bytes) -> int:
        if self.closed:
            raise BrokenPipeError("websocket client disconnected")
        self.put(bytes(data))
        return len(data)

    def flush(self) -> None:
        pass


def summarize(result: Optional[PipelineResult]) -> dict:
    if result is None:
        return {"type": "done", "statuses": [], "warnings": [], "errors": [], "aborted": False}
    return {
        "type": "done",
        "statuses": result.statuses,
        "warnings": result.warnings,
        "errors": [str(e) for e in result.errors],
        "aborted": result.aborted,
    }


async def stream_line(ws: WebSocket, line: str, config: Config) -> None:
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue(maxsize=QUEUE_SIZE)
    writer = QueueWriter(loop, queue)

    def work() -> Optional[PipelineResult]:
        # children must not read the server's own stdin
        devnull = os.open(os.devnull, os.O_RDONLY)
        try:
            return run_line(line, writer, order=config.order, stdin_fd=devnull)
        finally:
            os.close(devnull)
            writer.put(None)

    task = asyncio.ensure_future(asyncio.to_thread(work))
    while True:
        chunk = await queue.get()
        if chunk is None:
            break
        if writer.closed:
            # drain so a blocked write() can see the flag
            continue
        try:
            await ws.send_bytes(chunk)
        except Exception:
            log.info("client went away while %r was running", line)
            writer.closed = True
    try:
        result = await task
    except Exception as e:
        if writer.closed:
            # BrokenPipeError from write() is the expected way out
            if not isinstance(e, BrokenPipeError):
                log.exception("pipeline failed for %r", line)
            raise WebSocketDisconnect()
        log.exception("pipeline failed for %r", line)
        await ws.send_json({"type": "error", "message": str(e)})
        return
    if writer.closed:
        raise WebSocketDisconnect()
    await ws.send_json(summarize(result))


def parse_frame(msg: dict) -> Optional[object]:
    text = msg.get("text")
    if text is None and msg.get("bytes") is not None:
        text = bytes(msg["bytes"]).decode("utf-8", errors="replace")
    if text is None:
        return None
    try:
        payload = json.loads(text)
    except ValueError:
        return text
    # a bare "42" is a command line too
    return payload if isinstance(payload, dict) else text


async def websocket_endpoint(ws: WebSocket):
    config: Config = ws.app.state.config
    await ws.accept()
    log.info("client connected")
    try:
        while True:
            msg = await ws.receive()
            if msg.get("type") == "websocket.disconnect":
                break
            frame = parse_frame(msg)
            if frame is None:
                continue
            if isinstance(frame, dict):
                if frame.get("type") == "ping":
                    await ws.send_json({"type": "pong"})
                    continue
                if frame.get("type") != "line":
                    await ws.send_json({"type": "error", "message": f"unknown frame type {frame.get('type')!r}"})
                    continue
                frame = str(frame.get("line", ""))
            await stream_line(ws, frame, config)
    except WebSocketDisconnect:
        pass
    log.info("client disconnected")


async def root_index(request: Request):
    return RedirectResponse(url="/app/")


async def health(request: Request):
    return JSONResponse({"status": "ok"})


def create_app(config: Optional[Config] = None) -> Starlette:
    routes = [
        Route("/", root_index, methods=["GET"]),
        Route("/health", health, methods=["GET"]),
        WebSocketRoute("/ws", websocket_endpoint),
    ]
    # serve the frontend under /app so it cannot shadow /ws
    if FRONTEND_DIR.exists():
        routes.append(Mount("/app", StaticFiles(directory=str(FRONTEND_DIR), html=True), name="static"))
    app = Starlette(debug=False, routes=routes)
    app.state.config = config or Config.from_env()
    return app


def run(config: Optional[Config] = None) -> None:
    import uvicorn

    config = config or Config.from_env()
    setup_logging(config.log_level)
    uvicorn.run(create_app(config), host=config.host, port=config.port, reload=False)


if __name__ == "__main__":
    run()
