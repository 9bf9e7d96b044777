# Models package — import all models here so Alembic can discover them.

from realty.models.user import User  # noqa: F401
from realty.models.application import Application  # noqa: F401
from realty.models.lead_request import (  # noqa: F401
    BuyRequest,
    SellRequest,
    WorkWithMeRequest,
)
from realty.models.lead_note import LeadNote  # noqa: F401
from realty.models.message import Message  # noqa: F401
from realty.models.social_link import SocialLink  # noqa: F401
from realty.models.audit import AuditEvent  # noqa: F401
