# config/settings.py
# Environment driven Django settings for the catalog cache service.
import os
import sys
import logging
from pathlib import Path
import dj_database_url

import sentry_sdk
from sentry_sdk.integrations.django import DjangoIntegration
from sentry_sdk.integrations.redis import RedisIntegration
from sentry_sdk.integrations.celery import CeleryIntegration

# Configure logging early for startup diagnostics
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ==============================================================================
# PHASE 1: BASE CONFIGURATION
# ==============================================================================
BASE_DIR = Path(__file__).resolve().parent.parent
DJANGO_ENV = os.getenv("DJANGO_ENV", "production")

logger.info(f"Django initializing in {DJANGO_ENV} environment")


def env_flag(name, default="false"):
    return os.getenv(name, default).lower() in ("true", "1", "yes")


# ==============================================================================
# PHASE 2: SECURITY
# ==============================================================================

# DEBUG - MUST DEFAULT TO FALSE
DEBUG = env_flag("DEBUG")

if DEBUG:
    logger.warning("⚠️  DEBUG mode is enabled - NEVER use in production")

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY")
if not SECRET_KEY:
    if DEBUG:
        logger.warning("⚠️  DJANGO_SECRET_KEY not set, using insecure dev key")
        SECRET_KEY = "dev-insecure-key-change-in-production"
    else:
        logger.critical("❌ DJANGO_SECRET_KEY environment variable is REQUIRED in production")
        sys.exit(1)

ALLOWED_HOSTS_STR = os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1" if DEBUG else "")
if not ALLOWED_HOSTS_STR and not DEBUG:
    logger.critical("❌ ALLOWED_HOSTS environment variable is REQUIRED in production")
    sys.exit(1)
ALLOWED_HOSTS = [h.strip() for h in ALLOWED_HOSTS_STR.split(",") if h.strip()] if ALLOWED_HOSTS_STR else []

# ==============================================================================
# PHASE 3: INSTALLED APPS
# ==============================================================================
INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",

    # Local apps
    "apps.catalog",
]

# ==============================================================================
# PHASE 4: MIDDLEWARE
# ==============================================================================
MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "config.urls"

# ==============================================================================
# PHASE 5: DATABASE CONFIGURATION
# Support both DATABASE_URL and POSTGRES_* environment variables
# ==============================================================================
database_url = os.getenv("DATABASE_URL")

if not database_url:
    postgres_user = os.getenv("POSTGRES_USER")
    postgres_password = os.getenv("POSTGRES_PASSWORD")
    postgres_host = os.getenv("POSTGRES_HOST", "localhost")
    postgres_port = os.getenv("POSTGRES_PORT", "5432")
    postgres_db = os.getenv("POSTGRES_DB")

    if postgres_user and postgres_password and postgres_db:
        database_url = (
            f"postgres://{postgres_user}:{postgres_password}"
            f"@{postgres_host}:{postgres_port}/{postgres_db}"
        )
        logger.info("Built DATABASE_URL from POSTGRES_* env vars")
    elif not DEBUG:
        logger.critical("❌ DATABASE_URL or POSTGRES_* env vars are REQUIRED in production")
        sys.exit(1)
    else:
        database_url = f"sqlite:///{BASE_DIR / 'db.sqlite3'}"
        logger.warning("⚠️  Using development sqlite database")

DATABASES = {
    "default": dj_database_url.config(default=database_url, conn_max_age=600)
}

# ==============================================================================
# PHASE 6: TEMPLATES (admin)
# ==============================================================================
TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    }
]

# ==============================================================================
# PHASE 7: REDIS / CACHE / CELERY
# Catalog entries are stored forever: the cache must not evict them silently
# ==============================================================================
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0" if DEBUG else None)

if not REDIS_URL and not DEBUG:
    logger.critical("❌ REDIS_URL environment variable is REQUIRED in production")
    sys.exit(1)

if REDIS_URL:
    logger.info(f"Redis configured: {REDIS_URL.split('@')[-1]}")

    CELERY_BROKER_URL = REDIS_URL
    CELERY_RESULT_BACKEND = REDIS_URL
    CELERY_BROKER_CONNECTION_RETRY_ON_STARTUP = True
    CELERY_TASK_ACKS_LATE = True
    CELERY_WORKER_PREFETCH_MULTIPLIER = 1

    CACHES = {
        "default": {
            "BACKEND": "django_redis.cache.RedisCache",
            "LOCATION": REDIS_URL,
            "OPTIONS": {
                "CLIENT_CLASS": "django_redis.client.DefaultClient",
                "SOCKET_CONNECT_TIMEOUT": 5,
                "SOCKET_TIMEOUT": 5,
                "RETRY_ON_TIMEOUT": True,
            }
        }
    }
else:
    logger.warning("⚠️  Redis not configured, using in-memory cache (NOT for production)")
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
            "LOCATION": "catalog-cache",
            # Culling would drop "forever" lists and tag counters
            "OPTIONS": {"MAX_ENTRIES": 1_000_000},
        }
    }

    CELERY_BROKER_URL = None
    CELERY_RESULT_BACKEND = None

# ==============================================================================
# PHASE 8: CATALOG CACHE
# ==============================================================================
CATALOG_CACHE_ALIAS = os.getenv("CATALOG_CACHE_ALIAS", "default")
CATALOG_CACHE_PREFIX = os.getenv("CATALOG_CACHE_PREFIX", "catalog")
CATALOG_PRODUCT_LIST_STORE = os.getenv(
    "CATALOG_PRODUCT_LIST_STORE", "apps.catalog.store.ProductListStore"
)
# Keeps the popularity ordered list in step with product popularity changes
CATALOG_POPULARITY_TRACKING = env_flag("CATALOG_POPULARITY_TRACKING")

# ==============================================================================
# PHASE 9: LOGGING CONFIGURATION
# Stdout/stderr for container environments
# ==============================================================================
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "{levelname} {asctime} {message}",
            "style": "{",
        },
        "json": {
            "()": "apps.utils.logging.JsonLogFormatter",
        },
    },
    "handlers": {
        "console": {
            "level": "INFO",
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
        "json_console": {
            "level": "DEBUG",
            "class": "logging.StreamHandler",
            "formatter": "json",
        },
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "INFO" if not DEBUG else "DEBUG",
            "propagate": False,
        },
        "django.db.backends": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
        "apps": {
            "handlers": ["json_console"],
            "level": os.getenv("CATALOG_LOG_LEVEL", "DEBUG" if DEBUG else "INFO"),
            "propagate": False,
        },
        "celery": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
    },
}

# ==============================================================================
# PHASE 10: STATIC FILES
# ==============================================================================
STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
USE_TZ = True

# ==============================================================================
# PHASE 11: ERROR TRACKING (OPTIONAL)
# ==============================================================================
if os.getenv("SENTRY_DSN"):
    try:
        sentry_sdk.init(
            dsn=os.getenv("SENTRY_DSN"),
            integrations=[DjangoIntegration(), RedisIntegration(), CeleryIntegration()],
            environment=DJANGO_ENV,
            traces_sample_rate=0.1,
        )
        logger.info("✅ Sentry error tracking initialized")
    except Exception as e:
        logger.warning(f"⚠️  Failed to initialize Sentry: {e}")
else:
    logger.info("Sentry not configured (optional)")

logger.info(f"✅ Django configuration loaded ({DJANGO_ENV}, DEBUG={DEBUG})")
