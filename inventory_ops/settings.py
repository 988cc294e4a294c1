"""
Django settings for the inventory_ops project.

Configuration comes from the environment (django-environ), optionally loaded
from a .env file at the project root.
"""
from datetime import timedelta
from pathlib import Path

import environ

BASE_DIR = Path(__file__).resolve().parent.parent

env = environ.Env(
    DEBUG=(bool, False),
    SECRET_KEY=(str, ''),
    ALLOWED_HOSTS=(list, ['localhost', '127.0.0.1']),
    DATABASE_URL=(str, f"sqlite:///{BASE_DIR / 'db.sqlite3'}"),
    REDIS_URL=(str, ''),
    TIME_ZONE=(str, 'UTC'),
    LOG_LEVEL=(str, 'INFO'),
    # Saleor defaults; TenantSettings overrides per tenant
    SALEOR_API_URL=(str, ''),
    SALEOR_AUTH_TOKEN=(str, ''),
    SALEOR_CHANNEL=(str, 'webstore'),
    SALEOR_TIMEOUT_SECONDS=(int, 15),
    # Costing
    COST_DECIMAL_PLACES=(int, 4),
    CURRENCY_MINOR_UNITS=(int, 2),
    POSTING_SYNC_ON_COMMIT=(bool, True),
)

env_file = BASE_DIR / '.env'
if env_file.exists():
    env.read_env(str(env_file))

# ─── Core ───────────────────────────────────────────────────────────────────────

SECRET_KEY = env('SECRET_KEY') or 'dev-insecure-change-me'
DEBUG = env('DEBUG')
ALLOWED_HOSTS = env('ALLOWED_HOSTS')

LANGUAGE_CODE = 'en-us'
TIME_ZONE = env('TIME_ZONE')
USE_I18N = True
USE_TZ = True

AUTH_USER_MODEL = 'users.User'
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    # Third party
    'rest_framework',
    'rest_framework_simplejwt',
    'django_filters',
    'drf_spectacular',
    'simple_history',
    'channels',

    # Project
    'core',
    'users',
    'apps.tenants',
    'apps.suppliers',
    'apps.purchasing',
    'apps.receiving',
    'apps.costing',
    'apps.landed_costs',
    'apps.posting',
    'apps.api',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'apps.tenants.middleware.TenantMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    'simple_history.middleware.HistoryRequestMiddleware',
]

ROOT_URLCONF = 'inventory_ops.urls'
WSGI_APPLICATION = 'inventory_ops.wsgi.application'
ASGI_APPLICATION = 'inventory_ops.asgi.application'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

DATABASES = {
    'default': env.db('DATABASE_URL'),
}

# SQLite takes the write lock at BEGIN so concurrent posts queue on the busy
# timeout instead of failing on lock upgrade. The test database is a file so
# threaded tests get independent connections.
if DATABASES['default']['ENGINE'].endswith('sqlite3'):
    DATABASES['default'].setdefault('OPTIONS', {}).update({'transaction_mode': 'IMMEDIATE', 'timeout': 20})
    DATABASES['default']['TEST'] = {'NAME': str(BASE_DIR / 'test_db.sqlite3')}

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# ─── REST Framework ─────────────────────────────────────────────────────────────

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rest_framework_simplejwt.authentication.JWTAuthentication',
        'rest_framework.authentication.SessionAuthentication',
    ),
    'DEFAULT_PERMISSION_CLASSES': ('rest_framework.permissions.IsAuthenticated',),
    'DEFAULT_FILTER_BACKENDS': ('django_filters.rest_framework.DjangoFilterBackend',),
    'DEFAULT_PAGINATION_CLASS': 'rest_framework.pagination.PageNumberPagination',
    'PAGE_SIZE': 50,
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
}

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(minutes=30),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=1),
}

SPECTACULAR_SETTINGS = {
    'TITLE': 'Inventory Ops API',
    'DESCRIPTION': 'Goods receiving, cost layer ledger, landed costs and Saleor stock/cost posting',
    'VERSION': '1.0.0',
    'SERVE_INCLUDE_SCHEMA': False,
}

# ─── Channels ───────────────────────────────────────────────────────────────────

REDIS_URL = env('REDIS_URL')
if REDIS_URL:
    CHANNEL_LAYERS = {
        'default': {
            'BACKEND': 'channels_redis.core.RedisChannelLayer',
            'CONFIG': {'hosts': [REDIS_URL]},
        },
    }
else:
    CHANNEL_LAYERS = {
        'default': {'BACKEND': 'channels.layers.InMemoryChannelLayer'},
    }

# ─── Saleor / Costing ───────────────────────────────────────────────────────────

SALEOR_API_URL = env('SALEOR_API_URL')
SALEOR_AUTH_TOKEN = env('SALEOR_AUTH_TOKEN')
SALEOR_CHANNEL = env('SALEOR_CHANNEL')
SALEOR_TIMEOUT_SECONDS = env('SALEOR_TIMEOUT_SECONDS')

COST_DECIMAL_PLACES = env('COST_DECIMAL_PLACES')
CURRENCY_MINOR_UNITS = env('CURRENCY_MINOR_UNITS')
# Push postings to Saleor right after commit; otherwise only retry_postings does
POSTING_SYNC_ON_COMMIT = env('POSTING_SYNC_ON_COMMIT')

# ─── Logging ────────────────────────────────────────────────────────────────────

LOG_LEVEL = env('LOG_LEVEL').upper()

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'INFO' if LOG_LEVEL == 'DEBUG' else LOG_LEVEL,
            'propagate': False,
        },
        'apps': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
        'core': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
    },
}
