"""Seed script for the Lumina entries store.

Inserts a handful of classified sample thoughts into the configured entry
store so the dashboard and API have data to read without calling the
insight provider.
"""

from __future__ import annotations

from typing import List

from backend.app.config import load_settings
from backend.app.domain.entrystore import build_entry_store_gateway


def build_seed_entries() -> List[dict[str, object]]:
    """Return static seed data, oldest first."""

    return [
        {
            "content": "Book the dentist appointment before the end of the month",
            "metadata": {
                "category": "health",
                "priority": "medium",
                "summary": "Schedule a dentist visit this month.",
                "nextSteps": ["Call the clinic", "Add the slot to the calendar"],
            },
        },
        {
            "content": "Sketch the cover idea for the zine while it is fresh",
            "metadata": {
                "category": "creative",
                "priority": "low",
                "summary": "Capture the zine cover concept.",
                "nextSteps": ["Draw three thumbnails", "Pick a palette"],
            },
        },
        {
            "content": "Finish the quarterly report for Friday's review",
            "metadata": {
                "category": "work",
                "priority": "high",
                "summary": "Complete the quarterly report before Friday.",
                "nextSteps": ["Collect the numbers", "Draft the summary", "Send for review"],
            },
        },
    ]


def seed_entries() -> int:
    settings = load_settings()
    gateway = build_entry_store_gateway(settings)
    records = build_seed_entries()
    for record in records:
        gateway.insert_entry(
            content=str(record["content"]),
            metadata=dict(record["metadata"]),  # type: ignore[arg-type]
        )
    return len(records)


def main() -> None:
    inserted = seed_entries()
    print(f"Seeded {inserted} entries into the Lumina entry store.")


if __name__ == "__main__":
    main()
