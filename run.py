"""Local development server.

Usage:
    python run.py
    PORT=8000 FLASK_ENV=development python run.py

For migrations and the admin commands use the flask CLI instead:
    flask --app run db upgrade
    flask --app run seed-admin --email agent@example.com --password s3cret
"""

import os

from dotenv import load_dotenv

load_dotenv()  # .env must be loaded before the config classes read os.environ

from realty import create_app  # noqa: E402

app = create_app()

if __name__ == "__main__":
    app.run(
        debug=os.environ.get("FLASK_DEBUG", "1") == "1",
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", 5000)),
    )
