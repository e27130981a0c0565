import os

from django.core.asgi import get_asgi_application
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Django first: settings and the app registry must be ready before anything imports models
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'ingest_site.settings')
django_asgi_app = get_asgi_application()

from django.conf import settings  # noqa: E402

app = FastAPI(title="CSV Ingest", docs_url=None, redoc_url=None)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.DEBUG else list(settings.CORS_ALLOWED_ORIGINS),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/healthz")
def healthz():
    from django.db import connection

    with connection.cursor() as cursor:
        cursor.execute("SELECT 1")
    return {"ok": True, "service": "asgi"}


# everything else (upload, status, admin) is served by Django
app.mount("/", django_asgi_app)

# uvicorn ingest_site.asgi:app --port 8000
application = app
