# config/celery.py
import os
from celery import Celery

os.environ.setdefault(
    "DJANGO_SETTINGS_MODULE",
    os.getenv("DJANGO_SETTINGS_MODULE", "config.settings"),
)

app = Celery("clinic_scheduling")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()

# Upstash TLS relax (dev-only) if needed
if str(app.conf.broker_url or "").startswith("rediss://"):
    app.conf.broker_transport_options = {"ssl": {"cert_reqs": "CERT_NONE"}}
if str(app.conf.result_backend or "").startswith("rediss://"):
    app.conf.redis_backend_use_ssl = {"cert_reqs": "CERT_NONE"}


def _pending_expiry_configured() -> bool:
    from django.conf import settings

    return bool(getattr(settings, "SCHEDULING", {}).get("PENDING_EXPIRY_MINUTES"))


# The sweep is only scheduled when a pending-expiry policy is set.
app.conf.beat_schedule = {}
if _pending_expiry_configured():
    app.conf.beat_schedule["expire-stale-pending-every-5m"] = {
        "task": "apps.appointments.tasks.expire_stale_pending_appointments",
        "schedule": 300.0,
    }
