"""Create the tables and seed a small demo workshop.

Run with ``--reset`` to drop every table first.
"""

import os
import sys

from cutroom import create_app, db
from cutroom.seed import seed_demo_data

app = create_app()

with app.app_context():
    if "--reset" in sys.argv:
        db.drop_all()
    db.create_all()
    seed_demo_data(os.getenv("ADMIN_PASSWORD", "admin"))
    print("Database initialized.")
