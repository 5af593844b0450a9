import io
import csv
import logging
import secrets
from contextlib import asynccontextmanager
from typing import List, Optional, Dict, Any

import qrcode
from bson import ObjectId
from fastapi import FastAPI, HTTPException, UploadFile, File, Depends, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from openai import OpenAI
from pydantic import ValidationError
from starlette.datastructures import UploadFile as StarletteUploadFile

import config
from auth import init_firebase, verify_user
from cache import QueryCache, ValueCache
from database import FORMS, SUBMISSIONS, Database, to_object_id, utcnow
from embeddings import Embedder, MongoVectorIndex
from generation import FormSchemaGenerator, GenerationError, openai_backends
from keywords import extract_keywords
from retrieval import FormRetriever, summarize_form
from schemas import (
    FIELD_TYPES,
    Form as FormSchema,
    FormLayout,
    GenerateFormRequest,
    Submission as SubmissionSchema,
    SubmissionPayload,
    TemplateRequest,
)
from storage import upload_file_to_drive
from templates import get_template, list_templates, template_summaries

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_firebase()
    db = Database(config.DATABASE_URL, config.DATABASE_NAME).connect()
    value_cache = ValueCache(db, ttl=config.CACHE_TTL_SECONDS)
    value_cache.clear_expired()

    backends = []
    similarity = None
    if config.LLM_API_KEY:
        client = OpenAI(api_key=config.LLM_API_KEY, base_url=config.LLM_BASE_URL)
        backends = openai_backends(client, config.LLM_MODELS)
        if config.EMBEDDING_MODEL and config.VECTOR_INDEX_NAME:
            embedder = Embedder(client, config.EMBEDDING_MODEL, cache=value_cache)
            similarity = MongoVectorIndex(db, embedder, config.VECTOR_INDEX_NAME)
        else:
            logger.info("Similarity service not configured; embedding retrieval returns no forms")
    else:
        logger.warning("LLM_API_KEY not set; form generation will fail")

    app.state.db = db
    app.state.generator = FormSchemaGenerator(backends)
    app.state.similarity = similarity
    try:
        yield
    finally:
        db.close()


app = FastAPI(title="PromptForm API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Dependencies ---

def get_db(request: Request) -> Database:
    return request.app.state.db


def get_generator(request: Request) -> FormSchemaGenerator:
    return request.app.state.generator


def get_similarity(request: Request) -> Optional[MongoVectorIndex]:
    return getattr(request.app.state, "similarity", None)


def get_retriever(
    db: Database = Depends(get_db),
    similarity: Optional[MongoVectorIndex] = Depends(get_similarity),
) -> FormRetriever:
    return FormRetriever(db, QueryCache(db, ttl=config.CACHE_TTL_SECONDS), similarity)


# --- Helpers ---

def new_share_link() -> str:
    return secrets.token_urlsafe(8)[:10]


def share_url(share_link: str) -> str:
    return f"{config.PUBLIC_BASE_URL.rstrip('/')}/form/{share_link}"


def require_owned_form(db: Database, form_id: str, uid: str) -> Dict[str, Any]:
    form_doc = db.find_owned_form(form_id, uid)
    if not form_doc:
        raise HTTPException(status_code=404, detail="Form not found")
    return form_doc


def require_shared_form(db: Database, share_link: str) -> Dict[str, Any]:
    form_doc = db.find_form_by_share_link(share_link)
    if not form_doc:
        raise HTTPException(status_code=404, detail="Form not found")
    return form_doc


def form_fields(form_doc: Dict[str, Any]) -> List[Dict[str, Any]]:
    return (form_doc.get("schema") or {}).get("fields", [])


def is_blank(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def normalize_fields(fields: Any) -> List[Any]:
    """Coerce model output toward FormField: unknown types become text, options become strings."""
    if not isinstance(fields, list):
        return []
    result = []
    for field in fields:
        if isinstance(field, dict):
            field = dict(field)
            if field.get("type") not in FIELD_TYPES:
                field["type"] = "text"
            options = field.get("options")
            if options is not None:
                field["options"] = [str(o) for o in options] if isinstance(options, list) else None
        result.append(field)
    return result


def normalize_keywords(keywords: Any) -> List[str]:
    if isinstance(keywords, str):
        keywords = keywords.split(",")
    if not isinstance(keywords, list):
        return []
    return [str(k).strip().lower() for k in keywords if str(k).strip()]


def serialize_submission(sub: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(sub["_id"]),
        "responses": sub.get("responses", {}),
        "image_urls": sub.get("image_urls", {}),
        "submitted_at": sub.get("submitted_at"),
    }


# --- Routes ---
@app.get("/")
def read_root():
    return {"message": "PromptForm API running"}


@app.get("/test")
def test_database(db: Database = Depends(get_db)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        response["collections"] = db.list_collection_names()
        response["database"] = "✅ Connected"
        response["database_name"] = db.name
        response["connection_status"] = "Connected"
    except Exception as e:
        response["database"] = f"Error: {e}"
    return response


@app.post("/api/forms/generate", status_code=201)
def generate_form(
    payload: GenerateFormRequest,
    uid: str = Depends(verify_user),
    db: Database = Depends(get_db),
    retriever: FormRetriever = Depends(get_retriever),
    generator: FormSchemaGenerator = Depends(get_generator),
    similarity: Optional[MongoVectorIndex] = Depends(get_similarity),
):
    prompt = (payload.prompt or "").strip()
    if not prompt:
        raise HTTPException(status_code=400, detail="Prompt is required")

    keywords = extract_keywords(prompt)
    relevant = retriever.retrieve(uid, prompt, keywords, payload.use_embeddings, config.RETRIEVAL_LIMIT)
    past_forms = [summarize_form(f) for f in relevant]
    if payload.use_templates:
        past_forms.extend(template_summaries())

    try:
        generated = generator.generate(prompt, past_forms)
    except GenerationError as e:
        logger.error("Form generation failed for %s: %s", uid, e)
        raise HTTPException(status_code=502, detail=str(e))

    try:
        title = generated.get("title") or "Untitled Form"
        form_doc = FormSchema(
            user_id=uid,
            title=title,
            purpose=generated.get("purpose") or "",
            keywords=normalize_keywords(generated.get("keywords")),
            schema=FormLayout(title=title, fields=normalize_fields(generated.get("fields"))),
            share_link=new_share_link(),
        )
    except ValidationError as e:
        logger.error("Generated schema rejected: %s", e)
        raise HTTPException(status_code=502, detail="Generated form schema is malformed")

    form_id = db.create_document(FORMS, form_doc)
    logger.info("Created form %s for %s", form_id, uid)
    if similarity is not None:
        similarity.store({
            "_id": ObjectId(form_id),
            "title": form_doc.title,
            "purpose": form_doc.purpose,
            "keywords": form_doc.keywords,
        })

    return {
        "id": form_id,
        "title": form_doc.title,
        "purpose": form_doc.purpose,
        "keywords": form_doc.keywords,
        "schema": [f.model_dump(exclude_none=True) for f in form_doc.layout.fields],
        "share_link": form_doc.share_link,
        "url": f"/form/{form_doc.share_link}",
    }


@app.get("/api/forms")
def list_forms(uid: str = Depends(verify_user), db: Database = Depends(get_db)):
    forms = db.get_documents(FORMS, {"user_id": uid}, sort=[("created_at", -1)])
    result = []
    for f in forms:
        item = {
            "id": str(f.get("_id")),
            "title": f.get("title"),
            "purpose": f.get("purpose"),
            "share_link": f.get("share_link"),
            "created_at": f.get("created_at"),
            "url": f"/form/{f.get('share_link')}",
        }
        result.append(item)
    return {"forms": result}


@app.get("/api/forms/{share_link}")
def get_shared_form(share_link: str, db: Database = Depends(get_db)):
    form_doc = require_shared_form(db, share_link)
    return {
        "id": str(form_doc["_id"]),
        "title": form_doc.get("title"),
        "purpose": form_doc.get("purpose"),
        "schema": form_doc.get("schema"),
    }


@app.delete("/api/forms/{form_id}")
def delete_form(form_id: str, uid: str = Depends(verify_user), db: Database = Depends(get_db)):
    form_doc = require_owned_form(db, form_id, uid)
    removed = db.delete_form(form_doc)
    return {"message": "Form and submissions deleted successfully", "deleted_submissions": removed}


@app.post("/api/forms/{share_link}/submit", status_code=201)
async def submit_form(share_link: str, request: Request, db: Database = Depends(get_db)):
    form_doc = await run_in_threadpool(require_shared_form, db, share_link)

    content_type = request.headers.get("content-type", "")
    responses: Dict[str, Any] = {}
    image_urls: Dict[str, str] = {}

    if content_type.startswith("application/json"):
        try:
            payload = SubmissionPayload.model_validate(await request.json())
        except (ValueError, ValidationError) as e:
            raise HTTPException(status_code=400, detail=f"Invalid submission: {e}")
        responses = payload.responses
        image_urls = payload.image_urls
    else:
        # Handle multipart form for file uploads
        form = await request.form()
        for k, v in form.multi_items():
            if isinstance(v, StarletteUploadFile):
                if v.filename:
                    image_urls[k] = await run_in_threadpool(upload_file_to_drive, v)
            else:
                # checkbox groups (multiple values)
                if k in responses:
                    if isinstance(responses[k], list):
                        responses[k].append(str(v))
                    else:
                        responses[k] = [responses[k], str(v)]
                else:
                    responses[k] = str(v)

    for field in form_fields(form_doc):
        name = field.get("name")
        if field.get("required") and is_blank(responses.get(name)) and not image_urls.get(name):
            raise HTTPException(status_code=400, detail=f"Missing required field: {name}")

    sub = SubmissionSchema(
        form_id=str(form_doc["_id"]),
        responses=responses,
        image_urls=image_urls,
        submitted_at=utcnow(),
        user_agent=request.headers.get("user-agent"),
        ip_address=request.client.host if request.client else None,
    )
    sub_id = await run_in_threadpool(db.create_document, SUBMISSIONS, sub)
    return {"message": "Submission received", "submission_id": sub_id}


@app.get("/api/forms/{form_id}/submissions")
def list_submissions(form_id: str, uid: str = Depends(verify_user), db: Database = Depends(get_db)):
    form_doc = require_owned_form(db, form_id, uid)
    subs = db.get_documents(SUBMISSIONS, {"form_id": str(form_doc["_id"])}, sort=[("submitted_at", -1)])
    return {
        "form_id": str(form_doc["_id"]),
        "form_title": form_doc.get("title"),
        "submissions": [serialize_submission(s) for s in subs],
    }


@app.delete("/api/forms/{form_id}/submissions")
def delete_submission(
    form_id: str,
    submission_id: Optional[str] = Query(None, alias="submissionId"),
    uid: str = Depends(verify_user),
    db: Database = Depends(get_db),
):
    form_doc = require_owned_form(db, form_id, uid)
    if not submission_id:
        raise HTTPException(status_code=400, detail="Submission ID required")
    oid = to_object_id(submission_id)
    if oid is None:
        raise HTTPException(status_code=404, detail="Submission not found")
    result = db.collection(SUBMISSIONS).delete_one({"_id": oid, "form_id": str(form_doc["_id"])})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Submission not found")
    return {"message": "Submission deleted successfully"}


@app.get("/api/forms/{form_id}/analytics")
def form_analytics(form_id: str, uid: str = Depends(verify_user), db: Database = Depends(get_db)):
    form_doc = require_owned_form(db, form_id, uid)
    count = db.collection(SUBMISSIONS).count_documents({"form_id": str(form_doc["_id"])})
    recent = db.get_documents(
        SUBMISSIONS, {"form_id": str(form_doc["_id"])}, limit=5, sort=[("submitted_at", -1)]
    )
    return {"count": count, "recent": [serialize_submission(r) for r in recent]}


@app.get("/api/forms/{form_id}/export/csv")
def export_csv(form_id: str, uid: str = Depends(verify_user), db: Database = Depends(get_db)):
    form_doc = require_owned_form(db, form_id, uid)
    subs = db.get_documents(SUBMISSIONS, {"form_id": str(form_doc["_id"])}, sort=[("submitted_at", 1)])
    fields = [f.get("name") for f in form_fields(form_doc)]

    def iter_rows():
        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(["timestamp"] + fields)
        yield output.getvalue(); output.seek(0); output.truncate(0)
        for s in subs:
            row = [s.get("submitted_at").isoformat() if s.get("submitted_at") else ""]
            for name in fields:
                val = s.get("responses", {}).get(name)
                if val is None:
                    val = s.get("image_urls", {}).get(name)
                if isinstance(val, list):
                    val = ", ".join(map(str, val))
                row.append(val)
            writer.writerow(row)
            yield output.getvalue(); output.seek(0); output.truncate(0)
    return StreamingResponse(
        iter_rows(),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={form_doc['share_link']}.csv"},
    )


@app.get("/api/forms/{share_link}/qr")
def form_qr(share_link: str, db: Database = Depends(get_db)):
    require_shared_form(db, share_link)
    img = qrcode.make(share_url(share_link))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return StreamingResponse(buf, media_type="image/png")


@app.post("/api/upload")
def upload(file: Optional[UploadFile] = File(None)):
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file provided")
    return {"url": upload_file_to_drive(file)}


@app.get("/api/templates")
def get_templates():
    return {"templates": list_templates()}


@app.post("/api/templates")
def fetch_template(payload: TemplateRequest):
    if not payload.template_name:
        raise HTTPException(status_code=400, detail="Template name required")
    template = get_template(payload.template_name)
    if not template:
        raise HTTPException(status_code=404, detail="Template not found")
    return {"template": template["schema"]}
