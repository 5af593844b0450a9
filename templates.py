"""Pre-built form templates."""

from typing import Any, Dict, List, Optional

FORM_TEMPLATES: Dict[str, Dict[str, Any]] = {
    "jobApplication": {
        "title": "Job Application Form",
        "description": "Standard job application form",
        "schema": {
            "title": "Job Application",
            "fields": [
                {"name": "fullName", "type": "text", "required": True, "placeholder": "Enter your full name"},
                {"name": "email", "type": "email", "required": True, "placeholder": "your@email.com"},
                {"name": "phone", "type": "text", "required": True, "placeholder": "+1 (555) 000-0000"},
                {"name": "resume", "type": "image", "required": True, "placeholder": "Upload your resume (PDF)"},
                {"name": "coverLetter", "type": "text", "required": False, "placeholder": "Optional cover letter"},
            ],
        },
    },
    "signup": {
        "title": "User Signup Form",
        "description": "Basic user registration form",
        "schema": {
            "title": "Sign Up",
            "fields": [
                {"name": "username", "type": "text", "required": True, "placeholder": "Choose a username"},
                {"name": "email", "type": "email", "required": True, "placeholder": "your@email.com"},
                {"name": "profilePicture", "type": "image", "required": False, "placeholder": "Upload profile picture"},
                {"name": "bio", "type": "text", "required": False, "placeholder": "Tell us about yourself"},
            ],
        },
    },
    "survey": {
        "title": "Customer Feedback Survey",
        "description": "Collect customer feedback",
        "schema": {
            "title": "Feedback Survey",
            "fields": [
                {
                    "name": "satisfaction",
                    "type": "select",
                    "required": True,
                    "options": ["Very Satisfied", "Satisfied", "Neutral", "Dissatisfied"],
                },
                {"name": "feedback", "type": "text", "required": False, "placeholder": "Your feedback..."},
                {"name": "email", "type": "email", "required": False, "placeholder": "Optional email for follow-up"},
            ],
        },
    },
    "eventRegistration": {
        "title": "Event Registration Form",
        "description": "Register for an event",
        "schema": {
            "title": "Event Registration",
            "fields": [
                {"name": "name", "type": "text", "required": True, "placeholder": "Your full name"},
                {"name": "email", "type": "email", "required": True, "placeholder": "your@email.com"},
                {"name": "numberOfAttendees", "type": "number", "required": True, "placeholder": "How many people?"},
                {"name": "dietaryRestrictions", "type": "text", "required": False, "placeholder": "Any dietary restrictions?"},
                {"name": "agreeToTerms", "type": "checkbox", "required": True},
            ],
        },
    },
}


def get_template(name: str) -> Optional[Dict[str, Any]]:
    return FORM_TEMPLATES.get(name)


def list_templates() -> List[Dict[str, str]]:
    return [
        {"id": key, "title": value["title"], "description": value["description"]}
        for key, value in FORM_TEMPLATES.items()
    ]


def template_summaries() -> List[Dict[str, Any]]:
    """Templates in the shape used for generation context."""
    return [
        {
            "title": value["title"],
            "purpose": value["description"],
            "fields": [f["name"] for f in value["schema"]["fields"]],
        }
        for value in FORM_TEMPLATES.values()
    ]
