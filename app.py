from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from group_scanner_pkg.browser import connect_over_cdp
from group_scanner_pkg.config import CDP_URL, START_URL
from group_scanner_pkg.dom import parse_html
from group_scanner_pkg.models import (
    AutoScanRequest,
    AutoStartRequest,
    ExportFormat,
    FilterRequest,
    FormatRequest,
    OpenPageRequest,
    SnapshotScanRequest,
)
from group_scanner_pkg.navigation import goto_with_retry
from group_scanner_pkg.response import build_error, build_response
from group_scanner_pkg.session import ScannerSession


app = FastAPI(title="Facebook Group Scanner")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.session = ScannerSession.from_storage()
app.state.page = None

MEDIA_TYPES = {"csv": "text/csv; charset=utf-8", "json": "application/json"}


def _session() -> ScannerSession:
    return app.state.session


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/api/status")
async def status() -> JSONResponse:
    return JSONResponse(build_response(_session()))


@app.post("/api/open")
async def open_page(data: OpenPageRequest) -> JSONResponse:
    """Attach to the CDP Chrome and open the groups page that later scans read."""
    url = data.url or START_URL
    try:
        browser = await connect_over_cdp(data.cdp_url or CDP_URL)
        context = browser.contexts[0] if browser.contexts else await browser.new_context()
        page = await context.new_page()
    except Exception as e:
        return JSONResponse(status_code=502, content=build_error(url, f"CDP connection failed: {e}", []))

    ok, err = await goto_with_retry(page, url, timeout_ms=max(20000, data.max_wait))
    if not ok:
        return JSONResponse(status_code=502, content=build_error(url, f"Navigation failed: {err}", []))
    app.state.page = page
    session = _session()
    session.status = f"Opened {url}"
    await session.on_page_opened(page)
    return JSONResponse(build_response(session))


@app.post("/api/scan")
async def scan_now(data: SnapshotScanRequest | None = None) -> JSONResponse:
    session = _session()
    if data is not None and data.html is not None:
        report = session.scan_now(parse_html(data.html), base_url=data.base_url)
        return JSONResponse(build_response(session, report))
    if app.state.page is None:
        return JSONResponse(status_code=409, content=build_error(None, "No page open; POST /api/open first", []))
    report = await session.scan_page(app.state.page)
    return JSONResponse(build_response(session, report))


@app.post("/api/auto-scan/start")
async def start_auto_scan(data: AutoScanRequest) -> JSONResponse:
    session = _session()
    if app.state.page is None:
        return JSONResponse(status_code=409, content=build_error(None, "No page open; POST /api/open first", []))
    started = await session.start_auto_scan(app.state.page, data.duration)
    if not started:
        return JSONResponse(status_code=409, content=build_error(None, "Auto-scan already running", []))
    return JSONResponse(build_response(session))


@app.post("/api/auto-scan/stop")
async def stop_auto_scan() -> JSONResponse:
    session = _session()
    await session.stop_auto_scan()
    return JSONResponse(build_response(session))


@app.post("/api/clear")
async def clear_all() -> JSONResponse:
    session = _session()
    if session.is_auto_scanning:
        await session.stop_auto_scan()
    session.clear_all()
    return JSONResponse(build_response(session))


@app.post("/api/filter")
async def set_filter(data: FilterRequest) -> JSONResponse:
    session = _session()
    session.set_filter(data.min_members, data.activity_threshold_days)
    return JSONResponse(build_response(session))


@app.post("/api/format")
async def set_export_format(data: FormatRequest) -> JSONResponse:
    session = _session()
    session.set_export_format(data.format)
    return JSONResponse(build_response(session))


@app.post("/api/auto-start")
async def set_auto_start(data: AutoStartRequest) -> JSONResponse:
    """Choose whether opening a page starts an auto-scan right away."""
    session = _session()
    session.set_auto_start(data.enabled)
    return JSONResponse(build_response(session))


@app.get("/api/export")
async def export(fmt: ExportFormat | None = Query(default=None, alias="format")) -> Response:
    session = _session()
    fmt = fmt or session.settings.export_format
    filename = session.export_filename(fmt)
    return Response(
        content=session.export(fmt),
        media_type=MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
