from pathlib import Path
from typing import Annotated

from fastapi import Depends, FastAPI, Form, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from jobstream.config import Settings, get_settings
from jobstream.services.jobs import JobRegistry, JobRunner, RunnerSaturatedError, get_registry, get_runner
from jobstream.streaming import (
    FlushCheck,
    StreamingUnsupportedError,
    ensure_streaming_supported,
    event_stream_response,
    get_flush_check,
)

WEB_DIR = Path(__file__).parent / "web"
templates = Jinja2Templates(directory=str(WEB_DIR / "templates"))

app = FastAPI(title="jobstream", version="0.1.0")

if (WEB_DIR / "static").is_dir():
    app.mount("/static", StaticFiles(directory=str(WEB_DIR / "static")), name="static")


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/", response_class=HTMLResponse)
def index(
    request: Request,
    registry: Annotated[JobRegistry, Depends(get_registry)],
) -> Response:
    return templates.TemplateResponse(request, "index.html", {"jobs": registry.jobs()})


@app.get("/run")
def run_redirect() -> RedirectResponse:
    return RedirectResponse(url="/", status_code=303)


@app.post("/run", response_class=HTMLResponse)
def run_job(
    request: Request,
    job: Annotated[str, Form()] = "",
    path: Annotated[str, Form()] = "",
) -> Response:
    return templates.TemplateResponse(request, "stream.html", {"job": job, "path": path})


@app.api_route("/job_fields", methods=["GET", "POST"], response_class=HTMLResponse)
async def job_fields(
    request: Request,
    registry: Annotated[JobRegistry, Depends(get_registry)],
) -> Response:
    job_name = request.query_params.get("job")
    if job_name is None and request.method == "POST":
        form = await request.form()
        value = form.get("job")
        job_name = value if isinstance(value, str) else None

    job = registry.lookup(job_name or "")
    if job is None or job.fields_template is None:
        return HTMLResponse("")
    return templates.TemplateResponse(request, job.fields_template, {"job": job})


@app.get("/stream")
async def stream(
    request: Request,
    runner: Annotated[JobRunner, Depends(get_runner)],
    settings: Annotated[Settings, Depends(get_settings)],
    flush_check: Annotated[FlushCheck, Depends(get_flush_check)],
    job: str = Query(default=""),
    path: str = Query(default=""),
) -> Response:
    try:
        ensure_streaming_supported(request.scope, flush_check)
    except StreamingUnsupportedError as exc:
        return PlainTextResponse(str(exc), status_code=500)

    try:
        run = runner.start(job, path)
    except RunnerSaturatedError as exc:
        print(f"[jobstream] rejected job={job} reason=saturated", flush=True)
        return JSONResponse(status_code=503, content={"detail": str(exc)}, headers={"Retry-After": "1"})

    print(f"[jobstream] streaming job={job} path={path!r}", flush=True)
    return event_stream_response(
        run,
        allow_origin=settings.allow_origin,
        emit_done=settings.emit_done_event,
        poll_seconds=settings.receive_poll_seconds,
        is_disconnected=request.is_disconnected,
    )


def run() -> None:
    import uvicorn

    settings = get_settings()
    print(f"[jobstream] server starting at {settings.host}:{settings.port}", flush=True)
    uvicorn.run("jobstream.main:app", host=settings.host, port=settings.port, reload=False)


if __name__ == "__main__":
    run()
