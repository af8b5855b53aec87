from __future__ import annotations

import logging
import tempfile
import threading
import time
import uuid
from argparse import ArgumentParser
from pathlib import Path
from typing import *

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.templating import Jinja2Templates

from palsave import (ArrayProperty, MapProperty, NotFound, PalSaveError,
                     Property, SetProperty, StructProperty, TextProperty,
                     load_savefile)
from palsave.world import read_guilds

log = logging.getLogger(__name__)

UPLOAD_ROOT = Path(tempfile.gettempdir()) / "palsave_uploads"
UPLOAD_ROOT.mkdir(parents=True, exist_ok=True)
CLEAN_INTERVAL_SECONDS = 300  # every 5 minutes
FILE_TTL_SECONDS = 1800  # 30 minutes
PREVIEW_BYTES = 32


def _clean_loop() -> None:
    while True:
        now = time.time()
        for p in UPLOAD_ROOT.glob("*"):
            try:
                if p.is_file() and now - p.stat().st_mtime > FILE_TTL_SECONDS:
                    p.unlink(missing_ok=True)
            except OSError as e:
                log.warning("could not remove stale upload %s: %s", p, e)
        time.sleep(CLEAN_INTERVAL_SECONDS)


def _ensure_cleaner_started(app: FastAPI) -> None:
    # start a background daemon thread once
    if not getattr(app.state, "_cleaner_started", False):
        t = threading.Thread(target=_clean_loop,
                             name="palsave-cleaner", daemon=True)
        t.start()
        app.state._cleaner_started = True


BASE_DIR = Path(__file__).resolve().parent
TEMPLATES_DIR = BASE_DIR / "templates"

app = FastAPI(title="Palworld Save Inspector", version="0.1.0")
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def _sanitize_filename(name: str) -> str:
    keep = [c for c in name if c.isalnum() or c in (".", "_", "-")]
    sanitized = "".join(keep) or "upload.sav"
    return sanitized[-100:]


def _bytes_preview(b: bytes) -> str:
    n = len(b)
    preview = b[:PREVIEW_BYTES].hex(" ")
    more = f" +{n - PREVIEW_BYTES}b" if n > PREVIEW_BYTES else ""
    return f"{n} bytes: {preview}{more}" if n else "0 bytes"


def _format_value(val: Any) -> str:
    if isinstance(val, str):
        s = val if len(val) <= 200 else val[:200] + "…"
        return f'"{s}"'
    if isinstance(val, (bytes, bytearray)):
        return _bytes_preview(bytes(val))
    return str(val)


def _format_prop_value(obj: Property) -> Optional[str]:
    """Return a concise, human-friendly value preview for leaf properties.
    If the property has children (e.g., Struct or Array of Structs), return None.
    """
    if isinstance(obj, StructProperty):
        return None if isinstance(obj.value, dict) else _format_value(obj.value)
    if isinstance(obj, ArrayProperty):
        if isinstance(obj.values, (bytes, bytearray)):
            return _bytes_preview(bytes(obj.values))
        if obj.inner_type == "StructProperty":
            return None
        return f"Array<{obj.inner_type}> with {len(obj)} item(s)"
    if isinstance(obj, MapProperty):
        return f"Map<{obj.key_type}, {obj.value_type}> with {len(obj)} entry(ies)"
    if isinstance(obj, SetProperty):
        return f"Set<{obj.inner_type}> with {len(obj)} item(s)"
    if isinstance(obj, TextProperty):
        return f"<Text {_bytes_preview(obj.value)}>"
    return _format_value(obj.value)


def _fields_node(name: str, type: str, fields: Dict[str, Property]) -> Dict[str, Any]:
    return {
        "name": name,
        "type": type,
        "meta": f"{len(fields)} field(s)",
        "children": [create_node(f) for f in fields.values()] or None,
        "value": None,
    }


def _bare_node(name: str, type: str, value: Any) -> Dict[str, Any]:
    if isinstance(value, dict):
        return _fields_node(name, type, value)
    return {"name": name, "type": type, "meta": "", "children": None, "value": _format_value(value)}


def create_node(obj: Property) -> Dict[str, Any]:
    type = obj.type_name
    meta: str = ""
    children: List[Dict[str, Any]] = []

    if isinstance(obj, StructProperty) and isinstance(obj.value, dict):
        meta = f"{obj.struct_type}, {len(obj.value)} field(s)"
        children = [create_node(f) for f in obj.value.values()]
    elif isinstance(obj, ArrayProperty) and obj.inner_type == "StructProperty":
        meta = f"{len(obj)} {obj.struct_type} struct(s)"
        children = [_bare_node(f"[{i}]", obj.struct_type, v) for i, v in enumerate(obj)]
    elif isinstance(obj, MapProperty):
        meta = f"Map<{obj.key_type}, {obj.value_type}> x {len(obj)}"
        children = [
            {
                "name": f"[{i}]",
                "type": "MapEntry",
                "meta": "",
                "children": [_bare_node("Key", obj.key_type, e.key), _bare_node("Value", obj.value_type, e.value)],
                "value": None,
            }
            for i, e in enumerate(obj)
        ]

    value = None
    if not children:
        value = _format_prop_value(obj)

    return {
        "name": obj.name,
        "type": type,
        "meta": meta,
        "children": children if children else None,
        "value": value,
    }


def _guilds_payload(save) -> List[Dict[str, Any]]:
    try:
        guilds = read_guilds(save)
    except NotFound:
        # player saves and other files have no group map
        return []
    return [
        {
            "id": str(guild_id),
            "name": guild.guild_name,
            "admin_player_uid": str(guild.admin_player_uid),
            "base_camp_level": guild.base_camp_level,
            "players": [
                {"uid": str(p.player_uid), "name": p.player_name, "last_online": p.last_online_real_time}
                for p in guild.players
            ],
        }
        for guild_id, guild in guilds
    ]


@app.get("/")
def index(request: Request):
    return templates.TemplateResponse(request, "index.html")


@app.post("/api/upload")
async def api_upload(file: UploadFile = File(...)) -> JSONResponse:
    _ensure_cleaner_started(app)
    if not file.filename:
        raise HTTPException(status_code=400, detail="Missing filename")
    if not file.filename.lower().endswith(".sav"):
        raise HTTPException(
            status_code=400, detail="Please upload a .sav file")

    safe_name = _sanitize_filename(file.filename)
    unique = f"{int(time.time())}_{uuid.uuid4().hex}_{safe_name}"
    dest = UPLOAD_ROOT / unique

    try:
        with dest.open('wb') as f:
            while True:
                chunk = await file.read(1024 * 1024)
                if not chunk:
                    break
                f.write(chunk)
    except OSError as e:
        raise HTTPException(
            status_code=500, detail=f"Failed to save file: {e}")
    finally:
        await file.close()

    try:
        save = load_savefile(dest)
        return JSONResponse({
            "header": jsonable_encoder(save.header),
            "compression_tier": save.compression_tier,
            "properties": [create_node(p) for p in save.gvas.properties.values()],
            "guilds": _guilds_payload(save),
            "uploaded_path": str(dest),
        })
    except PalSaveError as e:
        # the cleaner will purge the file later
        log.info("rejected upload %s: %s", safe_name, e)
        raise HTTPException(
            status_code=400, detail=f"Parse error ({e.__class__.__name__}): {e}")


def main() -> None:
    parser = ArgumentParser(prog="palsave-webapp",
                            description="Palworld save inspector web app")
    parser.add_argument("--host", default="127.0.0.1",
                        help="Host to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000,
                        help="Port to bind (default: 8000)")
    args = parser.parse_args()

    import uvicorn  # only needed to serve the app
    uvicorn.run("palsave.webapp:app", host=args.host,
                port=args.port, reload=False, log_level="info")


if __name__ == "__main__":
    main()
