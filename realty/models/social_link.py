"""SocialLink model — footer social profiles, editable by admins.

One row per supported platform; the platform name is the primary key.
"""

from realty.extensions import db


class SocialLink(db.Model):
    __tablename__ = "social_links"

    PLATFORMS = ["instagram", "facebook", "twitter", "linkedin", "youtube"]

    LABELS = {
        "instagram": "Instagram",
        "facebook": "Facebook",
        "twitter": "Twitter / X",
        "linkedin": "LinkedIn",
        "youtube": "YouTube",
    }

    id = db.Column(db.String(50), primary_key=True)  # platform name
    url = db.Column(db.String(500), nullable=False, default="")
    enabled = db.Column(db.Boolean, default=False, nullable=False)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "label": self.LABELS.get(self.id, self.id),
            "url": self.url or "",
            "enabled": bool(self.enabled),
        }

    def __repr__(self):
        return f"<SocialLink {self.id} enabled={self.enabled}>"
