import os

basedir = os.path.abspath(os.path.dirname(__file__))

DB_FILE = os.environ.get("GYM_CRM_DB_FILE") or os.path.join(basedir, "data", "gym_crm.db")
LOG_LEVEL = os.environ.get("GYM_CRM_LOG_LEVEL", "INFO").upper()

# Categorization windows
DUE_SOON_WINDOW_DAYS = 7
LONG_TERM_MEMBER_DAYS = 60

# Streak leaderboard
STREAK_PENALTY_MULTIPLIER = 5
NO_VISIT_DAYS = 9999
LEADERBOARD_SIZE = 5

# Renewal table badges
RENEWAL_HIGH_URGENCY_DAYS = 3
RENEWAL_MEDIUM_URGENCY_DAYS = 7


class Config:
    """Base configuration"""

    SECRET_KEY = os.environ.get("SECRET_KEY") or "dev-secret-key-change-in-production"
    DB_FILE = DB_FILE
    JSON_SORT_KEYS = False


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    DB_FILE = ":memory:"


config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
