"""
Database Schemas for PromptForm

Each Pydantic model corresponds to a MongoDB collection (see database.py).
- Form -> "form"
- Submission -> "submission"
- CachedRetrieval -> "retrieval_cache"
- CacheEntry -> "cache"
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field

FieldType = Literal["text", "email", "number", "image", "checkbox", "select"]
FIELD_TYPES = get_args(FieldType)


class FormField(BaseModel):
    name: str
    type: FieldType = Field("text", description="text, email, number, image, checkbox, select")
    required: bool = False
    placeholder: Optional[str] = None
    options: Optional[List[str]] = None


class FormLayout(BaseModel):
    title: str
    fields: List[FormField]


class Form(BaseModel):
    # "schema" shadows a BaseModel attribute, hence the alias
    model_config = ConfigDict(populate_by_name=True)

    user_id: str
    title: str
    purpose: str = ""
    keywords: List[str] = []
    layout: FormLayout = Field(..., alias="schema")
    share_link: str
    embedding: Optional[List[float]] = None


class Submission(BaseModel):
    form_id: str
    responses: Dict[str, Any]
    image_urls: Dict[str, str] = {}
    submitted_at: datetime
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None


class CachedRetrieval(BaseModel):
    query_hash: str
    user_id: str
    retrieved_forms: List[str]
    expires_at: datetime


class CacheEntry(BaseModel):
    key: str
    value: Any
    expires_at: datetime
    created_at: datetime


# --- Requests ---

class GenerateFormRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: Optional[str] = None
    use_templates: bool = Field(False, alias="useTemplates")
    use_embeddings: bool = Field(False, alias="useEmbeddings")


class SubmissionPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    responses: Dict[str, Any] = {}
    image_urls: Dict[str, str] = Field({}, alias="imageUrls")


class TemplateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    template_name: Optional[str] = Field(None, alias="templateName")
