"""Configuration and options API routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from reeltrack.dependencies import get_config_service
from reeltrack.models.config import REGIONS
from reeltrack.services.config_service import ConfigService

router = APIRouter(tags=["config"])

# Options that may be changed over the API, with their coercion
EDITABLE_OPTIONS = {
    "cron_batch_size": int,
    "sweep_chunk_size": int,
    "sweep_delay_seconds": float,
    "request_timeout": float,
}


@router.get("/api/options")
async def get_options(cfg: ConfigService = Depends(get_config_service)):
    masked = cfg.masked_config()
    return {
        "region": cfg.region,
        "options": masked.get("options", {}),
        "credentials": masked["credentials"],
    }


@router.post("/api/options")
async def update_options(request: Request, cfg: ConfigService = Depends(get_config_service)):
    try:
        data = await request.json()
    except ValueError:
        return JSONResponse({"error": "Invalid JSON"}, status_code=400)
    if not isinstance(data, dict):
        return JSONResponse({"error": "Expected a JSON object"}, status_code=400)

    if "options" not in cfg.config:
        cfg.config["options"] = {}
    for key, value in data.items():
        if key == "region":
            continue
        coerce = EDITABLE_OPTIONS.get(key)
        if coerce is None:
            return JSONResponse(status_code=400, content={"error": f"Unknown option: {key}"})
        try:
            value = coerce(value)
        except (TypeError, ValueError):
            return JSONResponse(status_code=400, content={"error": f"Invalid value for {key}"})
        if value < 0 or (coerce is int and value < 1):
            return JSONResponse(status_code=400, content={"error": f"Invalid value for {key}"})
        cfg.config["options"][key] = value

    if "region" in data:
        try:
            cfg.set_region(data["region"])
        except ValueError as e:
            return JSONResponse(status_code=400, content={"error": str(e)})
    cfg.save()
    return {"status": "ok", "region": cfg.region, "options": cfg.config["options"]}


@router.get("/api/regions")
async def get_regions():
    return [{"code": code, "name": name} for code, name in REGIONS.items()]
