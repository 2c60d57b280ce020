# create_admin.py
import os
import sys

from app import create_app, db
from app.models import User

app = create_app()

email = (os.environ.get("ADMIN_EMAIL") or "").strip().lower()
password = os.environ.get("ADMIN_PASSWORD")
name = os.environ.get("ADMIN_NAME", "Administrator")

if not email or not password:
    print("ADMIN_EMAIL and ADMIN_PASSWORD must be set.")
    sys.exit(1)

with app.app_context():
    existing = User.query.filter_by(email=email).first()
    if existing:
        print("Admin user already exists:", existing)
    else:
        admin = User(email=email, name=name, is_admin=True)
        admin.set_password(password)
        db.session.add(admin)
        db.session.commit()
        print("Admin user created:", admin)
