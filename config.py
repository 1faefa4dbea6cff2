import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-me")
    SQLALCHEMY_DATABASE_URI = os.environ.get("SQLALCHEMY_DATABASE_URI", "sqlite:///qa.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    QUESTIONS_PER_PAGE = int(os.environ.get("QUESTIONS_PER_PAGE", 50))
    ANSWER_BODY_MIN_LENGTH = int(os.environ.get("ANSWER_BODY_MIN_LENGTH", 30))
    ANSWER_BODY_MAX_LENGTH = int(os.environ.get("ANSWER_BODY_MAX_LENGTH", 30000))
    NOTIFICATION_TITLE_LENGTH = int(os.environ.get("NOTIFICATION_TITLE_LENGTH", 50))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    LOG_LEVEL = "WARNING"
