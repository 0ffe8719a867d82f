"""
seed_slot_templates.py
----------------------
Seeds (creates or updates) the global default slot templates offered to every
business. You can run this any time; it will upsert by name.

Templates already used by a service keep their timing (they are frozen);
those are reported as skipped instead of being changed.

Usage:
    python manage.py seed_slot_templates
"""

from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand
from booking.models import SlotTemplate


CATALOG = [
    # Hair
    {"name": "Quick Cut",        "description": "Trim or line-up",            "slots_needed": 1, "duration_minutes": 30,  "category": "hair"},
    {"name": "Full Cut",         "description": "Wash, cut and style",        "slots_needed": 2, "duration_minutes": 60,  "category": "hair"},
    {"name": "Colouring",        "description": "Single-process colour",      "slots_needed": 4, "duration_minutes": 120, "category": "hair"},
    {"name": "Braids",           "description": "Braiding, medium length",    "slots_needed": 8, "duration_minutes": 240, "category": "hair"},

    # Wellness
    {"name": "Consultation",     "description": "First visit / assessment",   "slots_needed": 1, "duration_minutes": 30,  "category": "wellness"},
    {"name": "Massage (60 min)", "description": "Full body massage",          "slots_needed": 2, "duration_minutes": 60,  "category": "wellness"},

    # Classes
    {"name": "Group Class",      "description": "Instructor-led group class", "slots_needed": 2, "duration_minutes": 60,  "category": "class",
     "metadata": {"suggested_capacity": 10}},
]


class Command(BaseCommand):
    help = "Seed or update the global default slot templates."

    def handle(self, *args, **options):
        created = 0
        updated = 0
        skipped = 0

        for item in CATALOG:
            defaults = {
                "description": item["description"],
                "slots_needed": item["slots_needed"],
                "duration_minutes": item["duration_minutes"],
                "category": item["category"],
                "metadata": item.get("metadata", {}),
                "is_default": True,
                "is_active": True,
            }
            template = SlotTemplate.objects.filter(business__isnull=True, name=item["name"]).first()
            if template is None:
                SlotTemplate.objects.create(business=None, name=item["name"], **defaults)
                created += 1
                continue

            changed = [k for k, v in defaults.items() if getattr(template, k) != v]
            if not changed:
                continue
            for key in changed:
                setattr(template, key, defaults[key])
            try:
                template.save()
            except ValidationError as exc:
                self.stdout.write(self.style.WARNING(f"Skipped '{template.name}': {exc.messages[0]}"))
                skipped += 1
                continue
            updated += 1

        self.stdout.write(self.style.SUCCESS(
            f"Seed complete. Created={created}, Updated={updated}, Skipped={skipped}"
        ))
