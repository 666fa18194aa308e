from __future__ import annotations

import json
import logging
import os
import pathlib
import shutil
import tempfile
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse, Response

from visitplan.engine import build_schedule, to_csv
from visitplan.pdf import schedule_to_pdf
from visitplan.recheck import recheck_assignments
from visitplan.validation import load_and_validate
from visitplan.xlsx import schedule_to_xlsx

logger = logging.getLogger(__name__)

ROOT = pathlib.Path(__file__).parents[2]
SCHEMAS_DIR = ROOT / "packages/schemas"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

app = FastAPI(title="Service Visit Planner", version="0.1.0")

origins_str = os.environ.get("ALLOWED_ORIGINS", "*")
if origins_str == "*":
    allowed_origins = ["*"]
else:
    allowed_origins = [o.strip() for o in origins_str.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True if allowed_origins != ["*"] else False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _save_upload(upload: UploadFile, target_path: pathlib.Path) -> None:
    with open(target_path, "wb") as handle:
        shutil.copyfileobj(upload.file, handle)


def _customers_suffix(upload: UploadFile) -> str:
    suffix = pathlib.Path(upload.filename or "").suffix.lower()
    return suffix if suffix in {".csv", ".json"} else ".csv"


def _default_inputs() -> tuple[pathlib.Path, pathlib.Path]:
    customers_env = os.environ.get("CUSTOMERS_PATH")
    rules_env = os.environ.get("RULES_PATH")
    customers_path = pathlib.Path(customers_env) if customers_env else ROOT / "samples/customers.csv"
    rules_path = pathlib.Path(rules_env) if rules_env else ROOT / "samples/rules.json"
    for path in (customers_path, rules_path):
        if not path.exists():
            raise HTTPException(status_code=404, detail=f"input not found at {path}")
    return customers_path, rules_path


@app.post("/schedule")
async def schedule(
    customers: UploadFile = File(...),
    rules: UploadFile = File(...),
    seed: Optional[int] = Form(None),
):
    try:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = pathlib.Path(tmpdir)
            cpath = tmp / f"customers{_customers_suffix(customers)}"
            rpath = tmp / "rules.json"
            _save_upload(customers, cpath)
            _save_upload(rules, rpath)

            customers_data, rules_data = load_and_validate(cpath, rpath, SCHEMAS_DIR)
            return build_schedule(customers_data, rules_data, seed=seed)
    except HTTPException:
        raise
    except Exception as exc:
        logger.error("schedule request failed: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.post("/schedule/default")
async def schedule_default(seed: Optional[int] = None):
    try:
        customers_path, rules_path = _default_inputs()
        customers_data, rules_data = load_and_validate(customers_path, rules_path, SCHEMAS_DIR)
        return build_schedule(customers_data, rules_data, seed=seed)
    except HTTPException:
        raise
    except Exception as exc:
        logger.error("default schedule request failed: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.post("/recheck")
async def recheck(
    customers: UploadFile = File(...),
    rules: UploadFile = File(...),
    assignments: UploadFile = File(...),
):
    try:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = pathlib.Path(tmpdir)
            cpath = tmp / f"customers{_customers_suffix(customers)}"
            rpath = tmp / "rules.json"
            apath = tmp / "assignments.json"
            _save_upload(customers, cpath)
            _save_upload(rules, rpath)
            _save_upload(assignments, apath)

            customers_data, rules_data = load_and_validate(cpath, rpath, SCHEMAS_DIR)
            with open(apath, "r", encoding="utf-8") as handle:
                payload = json.load(handle)
            if not isinstance(payload, dict) or not isinstance(payload.get("assignments"), list):
                raise HTTPException(status_code=400, detail="assignments.json must contain {'assignments': [...]} ")
            return recheck_assignments(payload["assignments"], customers_data, rules_data)
    except HTTPException:
        raise
    except Exception as exc:
        logger.error("recheck request failed: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.post("/export/csv", response_class=PlainTextResponse)
async def export_csv(body: Dict[str, Any] = Body(...)):
    try:
        if "assignments" not in body:
            raise HTTPException(status_code=400, detail="Body must contain assignments")
        csv_text = to_csv(body["assignments"])
        return PlainTextResponse(content=csv_text, media_type="text/csv")
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.post("/export/pdf")
async def export_pdf(body: Dict[str, Any] = Body(...)):
    try:
        if "schedule" not in body:
            raise HTTPException(status_code=400, detail="Body must contain schedule")
        return Response(
            content=schedule_to_pdf(body),
            media_type="application/pdf",
            headers={"Content-Disposition": "attachment; filename=schedule.pdf"},
        )
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.post("/export/xlsx")
async def export_xlsx(body: Dict[str, Any] = Body(...)):
    try:
        if "schedule" not in body:
            raise HTTPException(status_code=400, detail="Body must contain schedule")
        return Response(
            content=schedule_to_xlsx(body),
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": "attachment; filename=schedule.xlsx"},
        )
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
