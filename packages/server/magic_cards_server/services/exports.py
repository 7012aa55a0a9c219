"""
Read-only exports built from a loaded project: the design brief handed to the
illustrator and a recipient CSV for fulfillment.
"""

from __future__ import annotations

import csv
import io
from typing import Iterable

from magic_cards_shared.schemas.contacts import Contact
from magic_cards_shared.schemas.funnel import BriefEntry, DesignBrief
from magic_cards_shared.schemas.projects import Project

CSV_COLUMNS: list[tuple[str, str]] = [
    ("Recipient Name", "name"),
    ("Company", "company"),
    ("Email", "email"),
    ("Phone", "phone"),
    ("Street Line 1", "street_line1"),
    ("Street Line 2", "street_line2"),
    ("City", "city"),
    ("State", "state"),
    ("Post Code", "post_code"),
    ("Country Code", "country_code"),
    ("Magic Cards", "magic_cards"),
    ("SFS Book", "sfs_book"),
    ("Golden Record", "golden_record"),
    ("Contact Review", "contact_review"),
    ("Contact Added By", "contact_added_by"),
]


def build_design_brief(project: Project, contacts: Iterable[Contact]) -> DesignBrief:
    entries = [
        BriefEntry(
            contact_id=c.id,
            name=c.name,
            company=c.company,
            linkedin_url=c.linkedin_url,
            additional_contact_context=c.additional_contact_context,
            contact_added_by=c.contact_added_by,
            copy_title1=c.copy_title1,
            copy_title2=c.copy_title2,
            copy_title3=c.copy_title3,
            copy_main_text=c.copy_main_text,
            image_direction=c.image_direction,
            headshot_urls=[a.url for a in c.headshot],
            company_logo_urls=[a.url for a in c.company_logo],
        )
        for c in contacts
    ]
    return DesignBrief(project_id=project.id, project_name=project.name, entries=entries)


def _cell(value) -> str:
    if isinstance(value, bool):
        return "Yes" if value else ""
    if value is None:
        return ""
    return getattr(value, "value", value)


def contacts_csv(contacts: Iterable[Contact]) -> str:
    """Render the recipient list as CSV text, one row per contact."""
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow([header for header, _ in CSV_COLUMNS])
    for contact in contacts:
        writer.writerow([_cell(getattr(contact, attr)) for _, attr in CSV_COLUMNS])
    return buf.getvalue()


def export_filename(project: Project) -> str:
    slug = "".join(ch if ch.isalnum() else "-" for ch in project.name.lower()).strip("-")
    return f"{slug or project.id}-recipients.csv"
