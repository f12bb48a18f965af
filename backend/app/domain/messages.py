"""User-facing strings shown by the dashboard, keyed by locale."""

from __future__ import annotations

from typing import Dict

from ..config import Locale

MESSAGES: Dict[str, Dict[str, str]] = {
    "fr": {
        "definingIntention": "Définition de votre intention...",
        "errorProcess": "Échec du traitement de la pensée. Veuillez réessayer.",
        "errorQuota": "Quota de l'IA atteint. Utilisez votre propre clé API.",
        "errorStorage": "Impossible d'enregistrer la pensée.",
        "sharedQuota": "Quota partagé",
        "personalKey": "Clé personnelle",
        "validKey": "Clé API valide et enregistrée.",
        "invalidKey": "Clé API invalide.",
    },
    "en": {
        "definingIntention": "Defining your intention...",
        "errorProcess": "Failed to process thought. Please try again.",
        "errorQuota": "AI quota reached. Use your own API key.",
        "errorStorage": "Could not save the thought.",
        "sharedQuota": "Shared quota",
        "personalKey": "Personal key",
        "validKey": "API key is valid and saved.",
        "invalidKey": "Invalid API key.",
    },
}


def message_for(locale: Locale, key: str) -> str:
    return MESSAGES[locale][key]
