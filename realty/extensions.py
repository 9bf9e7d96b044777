"""
Extension singletons for the realty app.

Each is bound in create_app() via init_app(). Rate limits are declared per
route; the limiter's backing store comes from RATELIMIT_STORAGE_URI.
"""

from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from flask_wtf.csrf import CSRFProtect

db = SQLAlchemy()
migrate = Migrate()
csrf = CSRFProtect()
limiter = Limiter(key_func=get_remote_address)

login_manager = LoginManager()
login_manager.login_view = "auth.login"
login_manager.login_message = "Please sign in to access this page."
login_manager.login_message_category = "info"
login_manager.session_protection = "basic"


@login_manager.user_loader
def load_user(user_id):
    """Session user loader. Deactivated accounts are treated as signed out."""
    from realty.models.user import User

    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return user
