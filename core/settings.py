from pathlib import Path
from decouple import config, Csv

BASE_DIR = Path(__file__).resolve().parent.parent
LOGS_DIR = BASE_DIR / 'logs'


# ==============================================
# CORE
# ==============================================
SECRET_KEY = config('SECRET_KEY', default='django-insecure-local-development-key')
DEBUG = config('DEBUG', default=False, cast=bool)
ALLOWED_HOSTS = config('ALLOWED_HOSTS', default='localhost,127.0.0.1', cast=Csv())

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    'rest_framework',
    'rest_framework.authtoken',
    'drf_spectacular',

    'apps.proctoring.apps.ProctoringConfig',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'core.urls'
WSGI_APPLICATION = 'core.wsgi.application'

# Only the Django admin renders templates
TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]


# ==============================================
# DATABASE
# ==============================================
# The in-progress uniqueness guard is a partial unique index, so use a
# backend that supports them (PostgreSQL in production, SQLite locally).
DB_ENGINE = config('DB_ENGINE', default='django.db.backends.sqlite3')

if DB_ENGINE == 'django.db.backends.postgresql':
    DATABASES = {
        'default': {
            'ENGINE': DB_ENGINE,
            'NAME': config('DB_NAME', default='proctoring_db'),
            'USER': config('DB_USER', default='postgres'),
            'PASSWORD': config('DB_PASSWORD', default=''),
            'HOST': config('DB_HOST', default='localhost'),
            'PORT': config('DB_PORT', default='5432'),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / config('DB_NAME', default='db.sqlite3'),
        }
    }

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# ==============================================
# IDENTITY
# ==============================================
# Role-bearing user: student, instructor or admin
AUTH_USER_MODEL = 'proctoring.User'

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator', 'OPTIONS': {'min_length': 8}},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
]

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework.authentication.TokenAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'DEFAULT_PAGINATION_CLASS': 'rest_framework.pagination.PageNumberPagination',
    'PAGE_SIZE': 20,
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
    # Renders ProctoringError subclasses as {error, code, ...details}
    'EXCEPTION_HANDLER': 'apps.proctoring.exceptions.exception_handler',
}


# ==============================================
# EXAM SESSIONS
# ==============================================
# Minutes tolerated past the exam duration before a submission counts as late
SUBMISSION_GRACE_MINUTES = config('SUBMISSION_GRACE_MINUTES', default=2, cast=int)
# What to do with a late submission: 'accept', 'flag' or 'reject'
LATE_SUBMISSION_POLICY = config('LATE_SUBMISSION_POLICY', default='accept')
# Auto-flag for review once more than this many suspicious events are logged
INTEGRITY_FLAG_EVENT_THRESHOLD = config('INTEGRITY_FLAG_EVENT_THRESHOLD', default=10, cast=int)
# Callable receiving audit entries; failures are logged and ignored
AUDIT_LOG_SINK = config('AUDIT_LOG_SINK', default='apps.proctoring.audit.log_sink')
# Read the client IP from X-Forwarded-For / X-Real-IP; enable only behind a trusted proxy
TRUST_X_FORWARDED_FOR = config('TRUST_X_FORWARDED_FOR', default=False, cast=bool)


# ==============================================
# API DOCUMENTATION (Swagger/OpenAPI)
# ==============================================
SPECTACULAR_SETTINGS = {
    'TITLE': 'Proctored Exam Engine API',
    'DESCRIPTION': '''
    Timed, proctored exam attempts with anti-cheat reporting and grading.

    **Authentication:** obtain a token at `/api/auth/token/` and send
    `Authorization: Token <your-token>` with every request.

    **Attempt flow:**
    1. `GET /api/exams/` and `/api/exams/{id}/instructions/`
    2. `POST /api/exams/{id}/start/` with a session fingerprint (re-posting resumes)
    3. `PATCH .../autosave/` and `POST .../events/` while answering
    4. `POST .../submit/`, then `GET /api/results/{id}/` once results are released
    ''',
    'VERSION': '1.0.0',
    'SERVE_INCLUDE_SCHEMA': False,
    'COMPONENT_SPLIT_REQUEST': True,
    'SCHEMA_PATH_PREFIX': '/api/',
    'TAGS': [
        {'name': 'Exams', 'description': 'Exam list, instructions and start'},
        {'name': 'Submissions', 'description': 'Autosave, events, submit and results'},
        {'name': 'Admin', 'description': 'Staff review and grading'},
    ],
}


# ==============================================
# LOCALE & STATIC
# ==============================================
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
# Exam windows are compared against timezone.now(); keep everything aware
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'


# ==============================================
# PRODUCTION SECURITY
# ==============================================
if not DEBUG:
    SECURE_SSL_REDIRECT = config('SECURE_SSL_REDIRECT', default=False, cast=bool)
    SESSION_COOKIE_SECURE = True
    CSRF_COOKIE_SECURE = True
    SECURE_CONTENT_TYPE_NOSNIFF = True
    X_FRAME_OPTIONS = 'DENY'


# ==============================================
# LOGGING
# ==============================================
# Security events and audit entries go to their own file for reviewers
LOGS_DIR.mkdir(exist_ok=True)

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '[{levelname}] {asctime} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
        'file': {
            'class': 'logging.FileHandler',
            'filename': LOGS_DIR / 'proctoring.log',
            'formatter': 'verbose',
        },
        'audit_file': {
            'class': 'logging.FileHandler',
            'filename': LOGS_DIR / 'audit.log',
            'formatter': 'verbose',
        },
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': config('DJANGO_LOG_LEVEL', default='INFO'),
        },
        'apps.proctoring': {
            'handlers': ['console', 'file'],
            'level': 'DEBUG' if DEBUG else 'INFO',
            'propagate': False,
        },
        'apps.proctoring.audit': {
            'handlers': ['audit_file'],
            'level': 'INFO',
            'propagate': True,
        },
    },
}
