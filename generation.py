"""
Form schema generation.

The generator tries an ordered list of backends (one per candidate model,
most capable first) and returns the first response that contains a JSON
object. A backend is any callable taking the prompt text and returning the
model's raw text.
"""

import json
import logging
import re
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from openai import OpenAI

from retrieval import build_context_prompt

logger = logging.getLogger(__name__)

T = TypeVar("T")
Backend = Callable[[str], str]

# Greedy: first "{" to last "}"
_JSON_RE = re.compile(r"\{.*\}", re.DOTALL)

PROMPT_TEMPLATE = """You are a form schema generator. Generate a JSON form schema for the following request:

"{request}"
{context}

Return a JSON object with this exact structure:
{{
  "title": "Form Title",
  "purpose": "brief description of form purpose",
  "keywords": ["keyword1", "keyword2", "keyword3"],
  "fields": [
    {{
      "name": "fieldName",
      "type": "text|email|number|image|checkbox|select",
      "required": true|false,
      "placeholder": "optional placeholder",
      "options": ["for", "select", "fields"]
    }}
  ]
}}

Important:
- Use appropriate field types (text, email, number, image, checkbox, select)
- For image uploads, use type "image"
- Make required fields true only when necessary
- Add helpful placeholders
- Include 3-5 keywords that describe the form
- Return ONLY valid JSON, no additional text"""


class GenerationError(Exception):
    """Raised when no candidate backend produced a usable schema."""
    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.details = details or {}


def extract_json(text: str) -> Dict[str, Any]:
    match = _JSON_RE.search(text or "")
    if not match:
        raise ValueError("Failed to generate valid form schema")
    return json.loads(match.group(0))


def first_success(candidates: Iterable[T], attempt: Callable[[T], Any], label: Callable[[T], str] = str) -> Any:
    """Run ``attempt`` on each candidate in order; the first one that does not raise wins."""
    last_error: Optional[Exception] = None
    for candidate in candidates:
        try:
            return attempt(candidate)
        except Exception as e:
            last_error = e
            logger.warning("Candidate %s failed: %s", label(candidate), e)
    reason = str(last_error) if last_error is not None else "no candidates configured"
    raise GenerationError(f"All candidate models failed. Last error: {reason}", {"last_error": reason})


def openai_backend(client: OpenAI, model: str) -> Backend:
    def backend(prompt: str) -> str:
        resp = client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
        )
        return resp.choices[0].message.content or ""
    backend.model = model
    return backend


def openai_backends(client: OpenAI, models: Sequence[str]) -> List[Backend]:
    return [openai_backend(client, m) for m in models]


def build_prompt(request: str, past_forms: Optional[List[Dict[str, Any]]] = None) -> str:
    return PROMPT_TEMPLATE.format(request=request, context=build_context_prompt(past_forms))


class FormSchemaGenerator:
    def __init__(self, backends: Sequence[Backend]):
        self.backends = list(backends)

    def generate(self, prompt: str, past_forms: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
        """
        Generate a form schema for a natural-language request.

        Args:
            prompt: What the user asked for
            past_forms: Forms (or summaries) to include as context

        Returns:
            The parsed object {title, purpose, keywords, fields}, unvalidated

        Raises:
            GenerationError: If every backend failed
        """
        full_prompt = build_prompt(prompt, past_forms)

        def attempt(backend: Backend) -> Dict[str, Any]:
            result = extract_json(backend(full_prompt))
            logger.info("Form generated successfully using model: %s", _name(backend))
            return result

        return first_success(self.backends, attempt, label=_name)


def _name(backend: Backend) -> str:
    return getattr(backend, "model", None) or getattr(backend, "__name__", repr(backend))
