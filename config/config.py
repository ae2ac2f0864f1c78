import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    DATABASE_URL = os.environ.get('DATABASE_URL') or 'sqlite:///peerreview.db'
    SQLALCHEMY_DATABASE_URI = DATABASE_URL

    # API Keys
    SENDGRID_API_KEY = os.environ.get('SENDGRID_API_KEY')
    SENDGRID_FROM_EMAIL = os.environ.get('SENDGRID_FROM_EMAIL', 'reviews@peerreview.dev')

    # Application Settings
    APP_URL = os.environ.get('APP_URL', 'http://localhost:5000')

    # Reviewer Matching
    DEFAULT_REVIEWERS_PER_SUBMISSION = int(os.environ.get('DEFAULT_REVIEWERS_PER_SUBMISSION', '2'))
    REVIEWER_SHORTLIST_FRACTION = float(os.environ.get('REVIEWER_SHORTLIST_FRACTION', '0.5'))
    REVIEW_DUE_DAYS = int(os.environ.get('REVIEW_DUE_DAYS', '7'))

    # Rubric (weights must sum to 1.0)
    RUBRIC_WEIGHTS = {
        'functionality': 0.40,
        'code_quality': 0.30,
        'best_practices': 0.20,
        'documentation': 0.10
    }
    APPROVAL_THRESHOLD = 80
    CHANGES_REQUESTED_THRESHOLD = 60

    # XP Rewards
    PEER_REVIEW_XP = 25
    MENTOR_REVIEW_XP = 50
    MERGE_XP_PER_DIFFICULTY = 100

    # Scheduler
    ENABLE_SCHEDULER = os.environ.get('ENABLE_SCHEDULER', 'false').lower() == 'true'
    EXPIRY_SWEEP_MINUTES = int(os.environ.get('EXPIRY_SWEEP_MINUTES', '60'))

    # Token Settings
    ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24  # 24 hours

    # Logging
    LOG_FILE = os.environ.get('LOG_FILE', 'logs/peerreview.log')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    DEBUG = True
    TESTING = True
    ENABLE_SCHEDULER = False


class ProductionConfig(Config):
    DEBUG = False
    TESTING = False


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}
