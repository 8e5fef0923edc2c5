import hmac
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse, Response
from loguru import logger
from pydantic import BaseModel

from app.web.dependencies import SESSION_ID_KEY, WebServices, client_origin, get_current_user, get_services
from padsplit.exceptions import PadSplitError
from padsplit.models import CamelModel, Credentials
from padsplit.scrapers.metro_directory import summarize_metros
from padsplit.services.activity_log import LOGIN_FAILED, LOGIN_SUCCESS
from padsplit.services.report_exporter import export_job
from padsplit.services.scrape_orchestrator import normalize_zip_codes
from padsplit.services.user_sessions import UserSession
from padsplit.utils.time import now_utc

router = APIRouter(tags=["api"])


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ScrapeRequest(CamelModel):
    city_name: str = ""
    zip_codes: List[str] = []


@router.get("/health")
async def api_health():
    return {"status": "ok", "timestamp": now_utc().isoformat()}


@router.post("/login")
async def login(payload: LoginRequest, request: Request, services: WebServices = Depends(get_services)):
    """Log into PadSplit and return the markets available to this host."""
    if not payload.email or not payload.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email and password required")

    credentials = Credentials(email=payload.email, password=payload.password)
    origin = client_origin(request)
    try:
        metros = await services.directory.login_and_list_metros(credentials)
    except PadSplitError as exc:
        services.activity.record(LOGIN_FAILED, email=credentials.email, error=str(exc), **origin)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc) or "Login failed") from exc
    except Exception as exc:
        services.activity.record(LOGIN_FAILED, email=credentials.email, error=str(exc), **origin)
        raise

    services.user_sessions.destroy(request.session.get(SESSION_ID_KEY))
    user = services.user_sessions.create(credentials)
    request.session[SESSION_ID_KEY] = user.session_id
    services.activity.record(LOGIN_SUCCESS, email=credentials.email, **origin)

    return {"success": True, "message": "Login successful", **summarize_metros(metros)}


@router.get("/city/{metro_id}/zipcodes")
async def city_zipcodes(
    metro_id: str,
    user: UserSession = Depends(get_current_user),
    services: WebServices = Depends(get_services),
):
    """Stats and selectable zip codes for one metro area."""
    detail = await services.directory.fetch_metro_detail(user.credentials, metro_id)
    return {
        "success": True,
        "city": detail.name,
        "metroId": detail.id,
        "marketType": detail.market_type,
        "stats": detail.stats.model_dump(by_alias=True),
        "zipCodes": detail.zip_codes,
    }


@router.post("/scrape")
async def start_scrape(
    payload: ScrapeRequest,
    user: UserSession = Depends(get_current_user),
    services: WebServices = Depends(get_services),
):
    """Start a background scrape job and return its id immediately."""
    try:
        zip_codes = normalize_zip_codes(payload.zip_codes)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    job_id = services.orchestrator.start(payload.city_name, zip_codes, user.credentials)
    return {
        "success": True,
        "jobId": job_id,
        "message": f"Started scraping {len(zip_codes)} zip codes",
    }


@router.get("/scrape/{job_id}/progress")
async def scrape_progress(job_id: str, services: WebServices = Depends(get_services)):
    return services.orchestrator.progress(job_id).model_dump(by_alias=True, mode="json")


@router.get("/scrape/{job_id}/results")
async def scrape_results(job_id: str, services: WebServices = Depends(get_services)):
    return services.orchestrator.results(job_id).model_dump(by_alias=True, mode="json")


@router.get("/scrape/{job_id}/export")
async def scrape_export(job_id: str, services: WebServices = Depends(get_services)):
    """Completed job as an Excel download."""
    report = export_job(services.orchestrator.get_job(job_id))
    return Response(
        content=report.content,
        media_type=report.media_type,
        headers={"Content-Disposition": f'attachment; filename="{report.filename}"'},
    )


@router.post("/logout")
async def logout(request: Request, services: WebServices = Depends(get_services)):
    services.user_sessions.destroy(request.session.get(SESSION_ID_KEY))
    request.session.clear()
    return {"success": True, "message": "Logged out"}


@router.get("/activity-log")
async def activity_log(
    key: Optional[str] = Query(default=None),
    services: WebServices = Depends(get_services),
):
    """Login activity, most recent first. Gated by the shared admin key."""
    expected = services.admin_key
    if not expected or not key or not hmac.compare_digest(key.encode(), expected.encode()):
        logger.warning("Rejected activity log request")
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"error": "Unauthorized"})

    logs = services.activity.read_entries()
    if not logs:
        return {"logs": [], "message": "No activity yet"}
    return {"totalEntries": len(logs), "logs": logs}
