# app.py
from __future__ import annotations
import base64
import io
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
from dotenv import load_dotenv
from flask import Flask, request, jsonify, render_template, send_file
from flask_cors import CORS
from flask_talisman import Talisman
from werkzeug.utils import secure_filename

# --- Load env BEFORE importing config (so config sees env) ---
ENV_PATH = Path(__file__).with_name(".env")
load_dotenv(ENV_PATH)

# --- Local modules ---
from config import DevConfig, ProdConfig, validate_config
from errors import InputError, InterviewHelperError
from exporter import EXPORT_FILENAME, export_text, format_answer, is_main_point
from interviewer import generate_interview_qa
from llm_client import chat_completion, compute_referer
from ocr_service import check_credentials, recognize_text
from parsers import PdfTextExtractor, extract_resume_text
from qa_parser import QAPair

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
LOG = logging.getLogger("app")

# ------------------------------
# App / Config
# ------------------------------
app = Flask(__name__)
app.config.from_object(ProdConfig if os.getenv("ENV") == "prod" else DevConfig)
validate_config(app.config)
app.json.ensure_ascii = False
app.json.sort_keys = False
app.url_map.strict_slashes = False

CORS(
    app,
    resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}},
    supports_credentials=False,
    allow_headers=["Content-Type"],
    methods=["GET", "POST", "OPTIONS"],
)

# Security headers / CSP
if app.config.get("DEBUG"):
    # Dev: do not force HTTPS
    Talisman(
        app,
        force_https=False,
        content_security_policy={
            "default-src": ["'self'"],
            "img-src": ["'self'", "data:"],
            "style-src": ["'self'", "'unsafe-inline'"],
            "script-src": ["'self'"],
            "frame-ancestors": ["'none'"],
        },
        session_cookie_secure=False,
        frame_options="DENY",
        referrer_policy="strict-origin-when-cross-origin",
    )
else:
    # Prod: strict CSP + HTTPS
    Talisman(
        app,
        force_https=True,
        content_security_policy={
            "default-src": ["'self'"],
            "base-uri": ["'self'"],
            "img-src": ["'self'", "data:"],
            "style-src": ["'self'"],
            "script-src": ["'self'"],
            "frame-ancestors": ["'none'"],
        },
        session_cookie_secure=True,
        frame_options="DENY",
        referrer_policy="strict-origin-when-cross-origin",
    )

# PDF capability: built once, looked up by the routes that parse uploads
app.extensions["pdf_extractor"] = PdfTextExtractor()


def _pdf_extractor() -> PdfTextExtractor:
    return app.extensions["pdf_extractor"]


def allowed_image(filename: str, mimetype: Optional[str]) -> bool:
    if (mimetype or "").startswith("image/"):
        return True
    return "." in filename and filename.rsplit(".", 1)[-1].lower() in app.config["ALLOWED_IMAGE_EXTS"]


@app.errorhandler(InterviewHelperError)
def _handle_app_error(e: InterviewHelperError):
    return jsonify(e.to_dict()), e.status_code


# ------------------------------
# Shared steps
# ------------------------------
def _resume_from_upload(f) -> str:
    data = f.read()
    if not data:
        raise InputError("empty file")
    safe_name = secure_filename(f.filename or "")
    text = extract_resume_text(safe_name, f.mimetype, data, _pdf_extractor())
    LOG.info("extracted resume text length=%d from %s", len(text), safe_name)
    return text


def _job_description_from_image(f) -> str:
    if not allowed_image(f.filename or "", f.mimetype):
        raise InputError("unsupported image type")
    data = f.read()
    if not data:
        raise InputError("empty file")
    image_b64 = base64.b64encode(data).decode("ascii")
    return recognize_text(image_b64, region=app.config["TENCENT_REGION"], relay_url=app.config["OCR_RELAY_URL"] or None)


def _generate(resume_text: str, job_description: str, style: Optional[str] = None):
    return generate_interview_qa(
        resume_text,
        job_description,
        style=style or app.config["RESPONSE_STYLE"],
        model=app.config["LLM_MODEL"],
        temperature=app.config["LLM_TEMPERATURE"],
        target_count=app.config["QA_TARGET_COUNT"],
        referer=compute_referer(request.headers.get("Origin")),
        title=app.config["APP_TITLE"],
    )


def _display_pairs(records: List[QAPair]) -> List[Dict[str, Any]]:
    compact = app.config["UI_VARIANT"] == "compact"
    return [
        {
            "question": qa.question,
            "lines": [
                {"text": ln, "main": is_main_point(ln)}
                for ln in format_answer(qa.answer, compact=compact)
            ],
        }
        for qa in records
    ]


def _json_object() -> Dict[str, Any]:
    data = request.get_json(force=True, silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InputError("request body must be a JSON object")
    return data


def _records_from_payload(items: Any) -> List[QAPair]:
    if not isinstance(items, list):
        raise InputError("qa_pairs must be a list")
    records = []
    for item in items:
        if not isinstance(item, dict):
            raise InputError("qa_pairs entries must be objects")
        records.append(QAPair(question=str(item.get("question") or ""), answer=str(item.get("answer") or "")))
    return records


# ------------------------------
# Page
# ------------------------------
def _render_page(status: int = 200, **ctx):
    ctx.setdefault("resume_text", "")
    ctx.setdefault("job_description", "")
    ctx.setdefault("qa_pairs", [])
    ctx.setdefault("error", None)
    return render_template("index.html", variant=app.config["UI_VARIANT"], **ctx), status


@app.get("/")
def home():
    return _render_page()


@app.post("/")
def home_generate():
    resume_text = request.form.get("resume_text", "")
    job_description = request.form.get("job_description", "")
    try:
        resume_file = request.files.get("resume_file")
        if resume_file and resume_file.filename:
            resume_text = _resume_from_upload(resume_file)
        jd_image = request.files.get("jd_image")
        if jd_image and jd_image.filename:
            job_description = _job_description_from_image(jd_image)
        parsed = _generate(resume_text, job_description)
    except InterviewHelperError as e:
        return _render_page(e.status_code, resume_text=resume_text, job_description=job_description, error=e.message)

    return _render_page(
        resume_text=resume_text,
        job_description=job_description,
        qa_pairs=_display_pairs(parsed.records),
        qa_json=json.dumps(parsed.to_dicts(), ensure_ascii=False),
    )


# ------------------------------
# API
# ------------------------------
@app.post("/api/chat")
def api_chat():
    data = _json_object()
    messages = data.get("messages")
    if not isinstance(messages, list) or not messages:
        return jsonify({"error": "messages required"}), 400
    LOG.info("chat request: model=%s messages=%d", data.get("model"), len(messages))
    result = chat_completion(
        messages=messages,
        model=data.get("model") or app.config["LLM_MODEL"],
        max_tokens=data.get("max_tokens"),
        temperature=data.get("temperature"),
        referer=compute_referer(request.headers.get("Origin")),
        title=app.config["APP_TITLE"],
    )
    return jsonify(result)


@app.post("/api/ocr")
def api_ocr():
    data = _json_object()
    text = recognize_text(
        data.get("image"),
        region=app.config["TENCENT_REGION"],
        relay_url=app.config["OCR_RELAY_URL"] or None,
    )
    return jsonify({"text": text})


@app.post("/api/resume/extract")
def api_resume_extract():
    if "file" not in request.files:
        return jsonify({"error": "no file"}), 400
    f = request.files["file"]
    if f.filename == "":
        return jsonify({"error": "empty filename"}), 400
    return jsonify({"text": _resume_from_upload(f)})


@app.post("/api/interview/generate")
def api_interview_generate():
    data = _json_object()
    parsed = _generate(
        data.get("resume_text") or "",
        data.get("job_description") or "",
        style=data.get("style"),
    )
    return jsonify({"qa_pairs": parsed.to_dicts(), "source": parsed.source})


@app.post("/api/interview/export")
def api_interview_export():
    if request.is_json:
        items = _json_object().get("qa_pairs")
    else:
        try:
            items = json.loads(request.form.get("qa_pairs") or "null")
        except ValueError:
            return jsonify({"error": "qa_pairs is not valid JSON"}), 400
    records = _records_from_payload(items)
    content = export_text(records)
    return send_file(
        io.BytesIO(content.encode("utf-8")),
        mimetype="text/plain; charset=utf-8",
        as_attachment=True,
        download_name=EXPORT_FILENAME,
    )


# ------------------------------
# CLI
# ------------------------------
@app.cli.command("check-ocr")
def check_ocr_command():
    """Send a probe image to the OCR vendor to verify TENCENT_SECRET_ID/KEY."""
    ok, message = check_credentials(app.config["TENCENT_REGION"])
    click.echo(("OK: " if ok else "FAILED: ") + message)
    if not ok:
        raise SystemExit(1)


# ------------------------------
# Entrypoint
# ------------------------------
if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "8000")), debug=app.config.get("DEBUG", False))
