import os
from datetime import timedelta


class Config:
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    ENV = os.getenv("FLASK_ENV", "development")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-secret-change-me")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=1)

    # orders
    DEFAULT_CITY = os.getenv("DEFAULT_CITY", "Lucknow")

    # booking dialogue: seconds the "booked" confirmation stays up before reset
    BOOKING_DISPLAY_SECONDS = int(os.getenv("BOOKING_DISPLAY_SECONDS", "5"))

    # natural-language interpreter; rule-based parsing is used when unset
    INTERPRETER_URL = os.getenv("INTERPRETER_URL")
    INTERPRETER_API_KEY = os.getenv("INTERPRETER_API_KEY")
    INTERPRETER_TIMEOUT = float(os.getenv("INTERPRETER_TIMEOUT", "10"))

    @staticmethod
    def init_app(app):
        if app.config.get("SQLALCHEMY_DATABASE_URI"):
            return
        if not os.getenv("DATABASE_URL"):
            os.makedirs(app.instance_path, exist_ok=True)
            app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{os.path.join(app.instance_path, 'cakeshop.db')}"
        else:
            app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv("DATABASE_URL")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    JWT_SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"
    INTERPRETER_URL = None
    LOG_LEVEL = "WARNING"
