"""Localized prompts and fallbacks for the insight gateway."""

from __future__ import annotations

from typing import Dict, Sequence

from google.genai import types

from ...config import Locale

FOCUS_SEPARATOR = "; "

SYSTEM_INSTRUCTIONS: Dict[str, str] = {
    "fr": (
        "Vous êtes Lumina, un système d'exploitation de vie intelligent. "
        "Catégorisez les pensées en 'travail', 'personnel', 'créatif' ou 'santé'. "
        "Fournissez un résumé et 2-3 étapes concrètes suivantes."
    ),
    "en": (
        "You are Lumina, an intelligent life operating system. "
        "Categorize thoughts into 'work', 'personal', 'creative', or 'health'. "
        "Provide a summary and 2-3 actionable next steps."
    ),
}

CLASSIFY_TEMPLATES: Dict[str, str] = {
    "fr": 'Analysez cette pensée et extrayez des informations structurées : "{text}"',
    "en": 'Analyze this thought and extract structured insights: "{text}"',
}

FOCUS_TEMPLATES: Dict[str, str] = {
    "fr": (
        "Basé sur ces pensées récentes : {context}, quel devrait être l'objectif "
        "principal pour aujourd'hui ? Restez inspirant et faites moins de 30 mots."
    ),
    "en": (
        "Based on these recent thoughts: {context}, what should be the primary "
        "focus for today? Keep it inspiring and under 30 words."
    ),
}

DEFAULT_FOCUS: Dict[str, str] = {
    "fr": "Concentrez-vous sur votre tâche la plus importante aujourd'hui.",
    "en": "Focus on your most impactful task today.",
}

VALIDATION_PROBE = "hi"

INSIGHT_RESPONSE_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "category": types.Schema(type=types.Type.STRING),
        "priority": types.Schema(
            type=types.Type.STRING, enum=["low", "medium", "high"]
        ),
        "summary": types.Schema(type=types.Type.STRING),
        "nextSteps": types.Schema(
            type=types.Type.ARRAY, items=types.Schema(type=types.Type.STRING)
        ),
    },
    required=["category", "priority", "summary", "nextSteps"],
)


def classify_prompt(text: str, locale: Locale) -> str:
    return CLASSIFY_TEMPLATES[locale].format(text=text)


def focus_prompt(recent_contents: Sequence[str], locale: Locale) -> str:
    return FOCUS_TEMPLATES[locale].format(context=join_focus_context(recent_contents))


def join_focus_context(recent_contents: Sequence[str]) -> str:
    return FOCUS_SEPARATOR.join(
        content.strip() for content in recent_contents if content and content.strip()
    )


def default_focus(locale: Locale) -> str:
    return DEFAULT_FOCUS[locale]
