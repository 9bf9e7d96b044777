"""Social link service — admin-edited footer links.

The platform set is fixed (SocialLink.PLATFORMS). Rows are created lazily,
disabled and empty, the first time the links are read.
"""

import logging

from realty.extensions import db
from realty.models.audit import AuditEvent
from realty.models.social_link import SocialLink

logger = logging.getLogger(__name__)


def ensure_defaults():
    """Create any missing platform rows. Flushes; caller commits."""
    existing = {link.id for link in SocialLink.query.all()}
    created = []
    for platform in SocialLink.PLATFORMS:
        if platform not in existing:
            link = SocialLink(id=platform, url="", enabled=False)
            db.session.add(link)
            created.append(platform)
    if created:
        db.session.flush()
    return created


def get_links():
    """All platform links in the fixed platform order."""
    if ensure_defaults():
        db.session.commit()
    links = {link.id: link for link in SocialLink.query.all()}
    return [links[p] for p in SocialLink.PLATFORMS if p in links]


def footer_links():
    """Enabled links that actually have a URL, for the public footer."""
    return [
        link for link in SocialLink.query.filter_by(enabled=True).all()
        if link.url
    ]


def update_links(payload, actor_user_id=None):
    """Apply a list of {id, url, enabled} dicts.

    Raises:
        ValueError: On an unknown platform id or a non-http(s) URL.
            Nothing is written when any entry is invalid.
    """
    if not isinstance(payload, list):
        raise ValueError("Expected a list of social links.")

    updates = []
    for item in payload:
        if not isinstance(item, dict):
            raise ValueError("Each social link must be an object.")
        platform = (item.get("id") or "").strip().lower()
        if platform not in SocialLink.PLATFORMS:
            raise ValueError(f"Unknown social platform '{platform}'.")
        url = (item.get("url") or "").strip()
        if url and not url.startswith(("http://", "https://")):
            raise ValueError(f"{SocialLink.LABELS[platform]} URL must start with http:// or https://")
        updates.append((platform, url, bool(item.get("enabled"))))

    ensure_defaults()
    for platform, url, enabled in updates:
        link = db.session.get(SocialLink, platform)
        link.url = url
        link.enabled = enabled

    db.session.add(AuditEvent(
        actor_user_id=actor_user_id,
        action="social_links.updated",
        metadata_={"platforms": [u[0] for u in updates]},
    ))
    db.session.flush()
    logger.info(f"Social links updated: {', '.join(u[0] for u in updates)}")
    return get_links()
