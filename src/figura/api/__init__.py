from __future__ import annotations

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..core.codec import index_lines
from ..core.choreography import index_script_lines
from ..core.errors import RetargetMissingRootError, UnknownSourceError
from ..core.examples import EXAMPLES, get_example
from ..core.session import ChoreographySession
from .serializers import (
    compiled_clip_to_dict,
    example_to_dict,
    example_to_list_item,
    line_markers_to_list,
    sampled_pose_to_dict,
)


def _require_text(body: dict, field: str) -> str:
    value = body.get(field)
    if not isinstance(value, str):
        raise HTTPException(status_code=400, detail=f"Missing field: {field}")
    return value


def create_api_app(session: ChoreographySession | None = None) -> FastAPI:
    app = FastAPI(title="figura", version="0.1.0")
    sess = session if session is not None else ChoreographySession()
    app.state.session = sess

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def bad_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": "Malformed request"})

    @app.get("/healthz")
    def healthz() -> dict[str, bool]:
        return {"ok": True}

    @app.get("/api/sources")
    def list_sources() -> dict:
        return {"sources": sess.library.sources()}

    @app.put("/api/sources/{name}")
    def put_source(name: str, body: dict) -> dict:
        text = _require_text(body, "text")
        sess.register_text(name, text)
        return {"ok": True, "name": name, "duration": sess.library.duration(name)}

    @app.post("/api/expand")
    def expand_script(body: dict) -> dict:
        script = _require_text(body, "script")
        try:
            return {"text": sess.expand_script(script)}
        except UnknownSourceError as e:
            raise HTTPException(status_code=404, detail=str(e))

    @app.post("/api/compile")
    def compile_script(body: dict) -> dict:
        script = _require_text(body, "script")
        try:
            clip = sess.apply_script(script)
        except UnknownSourceError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except RetargetMissingRootError as e:
            raise HTTPException(status_code=422, detail=str(e))
        return compiled_clip_to_dict(clip, revision=sess.revision)

    @app.get("/api/clip")
    def get_clip() -> dict:
        clip = sess.active_clip
        if clip is None:
            raise HTTPException(status_code=404, detail="No compiled clip yet")
        return compiled_clip_to_dict(clip, revision=sess.revision)

    @app.get("/api/clip/sample")
    def sample_clip(t: float) -> dict:
        pose = sess.sample(t)
        if pose is None:
            raise HTTPException(status_code=404, detail="No compiled clip yet")
        return {"t": float(t), "revision": sess.revision, "bones": sampled_pose_to_dict(pose)}

    @app.post("/api/index-lines")
    def index_text_lines(body: dict) -> dict:
        text = _require_text(body, "text")
        dialect = body.get("dialect", "script")
        if dialect == "script":
            index = index_script_lines(text, default_bpm=sess.settings.default_bpm)
        elif dialect == "keyframes":
            index = index_lines(text)
        else:
            raise HTTPException(status_code=400, detail="dialect must be 'script' or 'keyframes'")
        return {"markers": line_markers_to_list(index)}

    @app.get("/api/examples")
    def list_examples() -> dict:
        return {"examples": [example_to_list_item(ex) for ex in EXAMPLES]}

    @app.get("/api/examples/{example_id}")
    def get_example_script(example_id: str) -> dict:
        ex = get_example(example_id)
        if ex is None:
            raise HTTPException(status_code=404, detail=f"Unknown example: {example_id}")
        return example_to_dict(ex)

    return app
