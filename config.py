import os
from datetime import timedelta
from logging.config import dictConfig

import sentry_sdk
from anyio import Path

NAME = 'straymap-backend'
VERSION = '1.0.0'
WEBSITE = os.getenv('WEBSITE')

USER_AGENT = f'{NAME}/{VERSION} (+{WEBSITE})' if WEBSITE else f'{NAME}/{VERSION}'
ENVIRONMENT = os.getenv('ENVIRONMENT')
LOG_LEVEL = os.getenv('LOG_LEVEL', 'DEBUG').upper()

DATABASE_LOG = os.getenv('DATABASE_LOG', '0').strip().lower() in ('1', 'true', 'yes')
DATABASE_URL = os.getenv('DATABASE_URL', 'postgresql+asyncpg://postgres:postgres@/postgres?host=/tmp/straymap-postgres')

NOMINATIM_URL = os.getenv('NOMINATIM_URL', 'https://nominatim.openstreetmap.org').rstrip('/')
GEOCODING_TIMEOUT = timedelta(seconds=float(os.getenv('GEOCODING_TIMEOUT', '10')))

GEMINI_API_KEY = os.getenv('GEMINI_API_KEY') or None
GEMINI_MODEL = os.getenv('GEMINI_MODEL', 'gemini-2.0-flash')
GEMINI_API_URL = os.getenv('GEMINI_API_URL', 'https://generativelanguage.googleapis.com/v1beta').rstrip('/')
CLASSIFIER_TIMEOUT = timedelta(seconds=float(os.getenv('CLASSIFIER_TIMEOUT', '30')))

# identity is asserted by an authenticating reverse proxy in front of the app
TRUSTED_USER_HEADER = os.getenv('TRUSTED_USER_HEADER', 'X-Forwarded-User')
TRUSTED_EMAIL_HEADER = os.getenv('TRUSTED_EMAIL_HEADER', 'X-Forwarded-Email')
LOGIN_URL = os.getenv('LOGIN_URL', '/oauth2/sign_in')
LOGOUT_URL = os.getenv('LOGOUT_URL', '/oauth2/sign_out')

IMAGE_MAX_WIDTH = 869
IMAGE_MAX_HEIGHT = 896
IMAGE_QUALITY = 85
IMAGE_UPLOAD_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB
IMAGE_CACHE_MAX_AGE = timedelta(days=365)

UNDEFINED_BREED = 'undefined breed'

PHOTOS_DIR = Path(os.getenv('PHOTOS_DIR', 'data/photos'))

# Logging configuration
dictConfig(
    {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'default': {
                '()': 'uvicorn.logging.DefaultFormatter',
                'fmt': '%(levelprefix)s | %(asctime)s | %(name)s: %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S',
            },
        },
        'handlers': {
            'default': {
                'formatter': 'default',
                'class': 'logging.StreamHandler',
                'stream': 'ext://sys.stderr',
            },
        },
        'loggers': {
            'root': {'handlers': ['default'], 'level': LOG_LEVEL},
            **{
                # reduce logging verbosity of some modules
                module: {'handlers': [], 'level': 'INFO'}
                for module in (
                    'hpack',
                    'httpx',
                    'httpcore',
                    'multipart',
                    'PIL',
                    'aiosqlite',
                )
            },
            **{
                # conditional database logging
                module: {'handlers': [], 'level': 'INFO'}
                for module in (
                    'sqlalchemy.engine',
                    'sqlalchemy.pool',
                )
                if DATABASE_LOG
            },
        },
    }
)

if SENTRY_DSN := os.getenv('SENTRY_DSN'):
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        release=VERSION,
        environment=ENVIRONMENT,
        enable_tracing=True,
        traces_sample_rate=0.2,
        trace_propagation_targets=None,
        profiles_sample_rate=0.2,
    )
