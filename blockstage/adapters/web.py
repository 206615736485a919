"""aiohttp adapter — JSON routes over the Stage facade.

Bodies follow the ``{"success": ..., "error": ...}`` shape returned by Stage.
Failures map to 400 (bad input), 404 (unknown id) or 409 (run in progress).
"""

import json
import sys
from typing import Any, Dict, Optional

from aiohttp import web

from blockstage.stage import Stage


def _log(msg: str):
    print(msg, file=sys.stderr)


STAGE_KEY = web.AppKey("stage", Stage)

_ERROR_STATUS = {
    "not_found": 404,
    "unknown_kind": 400,
    "bad_request": 400,
    "last_actor": 409,
    "running": 409,
    "already_running": 409,
}


def _respond(result: Dict[str, Any]) -> web.Response:
    status = 200
    if not result.get("success"):
        status = _ERROR_STATUS.get(result.get("error"), 400)
    return web.json_response(result, status=status)


async def _read_json(request: web.Request) -> Dict[str, Any]:
    if not request.can_read_body:
        return {}
    try:
        data = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise web.HTTPBadRequest(
            text=json.dumps({"success": False, "error": "bad_request"}),
            content_type="application/json",
        )
    return data if isinstance(data, dict) else {}


async def get_state(request: web.Request) -> web.Response:
    return web.json_response(request.app[STAGE_KEY].view())


async def add_block(request: web.Request) -> web.Response:
    body = await _read_json(request)
    kind = body.get("kind")
    if not isinstance(kind, str):
        return _respond({"success": False, "error": "bad_request"})
    return _respond(request.app[STAGE_KEY].add_block(kind, body.get("actor_id")))


async def update_block(request: web.Request) -> web.Response:
    body = await _read_json(request)
    params = body.get("params")
    if not isinstance(params, dict):
        return _respond({"success": False, "error": "bad_request"})
    return _respond(request.app[STAGE_KEY].update_block(
        request.match_info["block_id"], params, body.get("actor_id"),
    ))


async def remove_block(request: web.Request) -> web.Response:
    actor_id = request.query.get("actor_id")
    return _respond(request.app[STAGE_KEY].remove_block(request.match_info["block_id"], actor_id))


async def add_child(request: web.Request) -> web.Response:
    body = await _read_json(request)
    kind = body.get("kind")
    if not isinstance(kind, str):
        return _respond({"success": False, "error": "bad_request"})
    return _respond(request.app[STAGE_KEY].add_child(
        request.match_info["block_id"], kind, body.get("actor_id"),
    ))


async def clear_blocks(request: web.Request) -> web.Response:
    actor_id = request.query.get("actor_id")
    return _respond(request.app[STAGE_KEY].clear_blocks(actor_id))


async def add_actor(request: web.Request) -> web.Response:
    return _respond(request.app[STAGE_KEY].add_actor())


async def remove_actor(request: web.Request) -> web.Response:
    return _respond(request.app[STAGE_KEY].remove_actor(request.match_info["actor_id"]))


async def select_actor(request: web.Request) -> web.Response:
    return _respond(request.app[STAGE_KEY].select_actor(request.match_info["actor_id"]))


async def start_run(request: web.Request) -> web.Response:
    body = await _read_json(request)
    task = request.app[STAGE_KEY].start_run(body.get("actor_id"))
    if task is None:
        return _respond({"success": False, "error": "already_running"})
    return web.json_response({"success": True, "started": True}, status=202)


async def stop_run(request: web.Request) -> web.Response:
    return _respond(request.app[STAGE_KEY].stop())


def create_app(stage: Optional[Stage] = None) -> web.Application:
    app = web.Application()
    app[STAGE_KEY] = stage or Stage()
    app.router.add_get("/state", get_state)
    app.router.add_post("/blocks", add_block)
    app.router.add_delete("/blocks", clear_blocks)
    app.router.add_patch("/blocks/{block_id}", update_block)
    app.router.add_delete("/blocks/{block_id}", remove_block)
    app.router.add_post("/blocks/{block_id}/children", add_child)
    app.router.add_post("/actors", add_actor)
    app.router.add_delete("/actors/{actor_id}", remove_actor)
    app.router.add_post("/actors/{actor_id}/select", select_actor)
    app.router.add_post("/run", start_run)
    app.router.add_post("/stop", stop_run)
    _log(f"[Web] routes registered ({len(app.router.routes())})")
    return app
