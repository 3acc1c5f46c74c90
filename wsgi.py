# wsgi.py
# Production entrypoint for Gunicorn; also the app the RQ worker loads

import os

from app import create_app

app = create_app()

if __name__ == "__main__":
    # Never use this in production; use gunicorn instead
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "5000")))
