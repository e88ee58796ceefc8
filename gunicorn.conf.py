"""Gunicorn configuration for the Toetsgenerator."""

wsgi_app = "toetsgen.web.app:create_app()"
bind = "0.0.0.0:8000"
workers = 2  # Keep low for SQLite (avoids write contention)
threads = 4  # Approval lookups run on a helper thread per request
timeout = 120  # Exam generation can take a while
accesslog = "-"
errorlog = "-"
loglevel = "info"
