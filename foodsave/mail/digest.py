"""Digest emails summarising pending donations and newly available chats."""

import enum
from dataclasses import dataclass
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..config import settings
from ..donations.models import Donation

_TEMPLATE_DIR = Path(__file__).parent / "templates"

_env = Environment(
    loader=FileSystemLoader(str(_TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


class DigestCategory(enum.StrEnum):
    PENDING = "pending"
    APPROVED = "approved"


@dataclass(frozen=True)
class _DigestLayout:
    subject: str
    template: str
    status_label: str
    path: str
    link_label: str


_LAYOUTS = {
    DigestCategory.PENDING: _DigestLayout(
        subject="Pending Donations",
        template="pending_digest.html",
        status_label="Pending action required",
        path="/donations",
        link_label="Go to Donations",
    ),
    DigestCategory.APPROVED: _DigestLayout(
        subject="New Chats Available",
        template="approved_digest.html",
        status_label="Chat now available",
        path="/communication",
        link_label="Go to Chats",
    ),
}


@dataclass(frozen=True)
class DigestEmail:
    subject: str
    html_body: str
    text_body: str


def compose_digest(category: DigestCategory, user_name: str | None, donations: list[Donation]) -> DigestEmail:
    layout = _LAYOUTS[category]
    link = settings.frontend_url.rstrip("/") + layout.path
    html = _env.get_template(layout.template).render(
        subject=layout.subject,
        user_name=user_name,
        donations=donations,
        status_label=layout.status_label,
        link=link,
        link_label=layout.link_label,
    )
    lines = [f"Hello {user_name or 'User'},", ""]
    lines += [f"  Donation #{d.id}: {layout.status_label}" for d in donations]
    lines += ["", f"{layout.link_label}: {link}", "", "--", "FoodSave Hub"]
    return DigestEmail(subject=layout.subject, html_body=html, text_body="\n".join(lines) + "\n")
