"""
Bluesky Feed - Read-only HTTP API

    GET /posts/{post_id}    stored post with its reply ids, 404 if absent

Run with:
    uvicorn app:app --port 8000
"""

import sys
from pathlib import Path

HERE = Path(__file__).resolve().parent
sys.path.insert(0, str(HERE))
sys.path.insert(0, str(HERE.parent.parent / "src"))

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from hashmodel import HashModelConfig, PersistenceError, configure_logging, open_session

from entities import Post


def post_to_dict(post: Post) -> dict:
    return {
        "post_id": post.post_id,
        "date_time": post.get_date_time(),
        "text": post.get_post_text(),
        "replies": [reply.post_id for reply in post.get_replies()],
    }


def get_post(request: Request) -> JSONResponse:
    post_id = request.path_params["post_id"]
    session = request.app.state.session
    try:
        post = session.load(Post(post_id))
    except PersistenceError as e:
        return JSONResponse({"error": str(e)}, status_code=404)
    return JSONResponse(post_to_dict(post))


def create_app(config: HashModelConfig = None) -> Starlette:
    config = config or HashModelConfig.from_environment()
    configure_logging(config)

    app = Starlette(routes=[Route("/posts/{post_id:int}", get_post, methods=["GET"])])
    app.state.session = open_session(config)
    return app


app = create_app()
