import os
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    PROJECT_NAME: str = "Microfinance Loan Application Service"
    MONGODB_URI: str = os.getenv("MONGODB_URI")
    MONGODB_DB_NAME: str = os.getenv("MONGODB_DB_NAME")
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY")
    JWT_ALGORITHM: str = "HS256"
    CLIENT_URL: str = os.getenv("CLIENT_URL", "http://localhost:3000")
    PHILSMS_API_TOKEN: str = os.getenv("PHILSMS_API_TOKEN")
    PHILSMS_SENDER_ID: str = os.getenv("PHILSMS_SENDER_ID")

    # Type of the form template loans are instantiated from
    LOAN_FORM_TYPE: str = os.getenv("LOAN_FORM_TYPE", "Loan Application")
    # When false, asking for the status a loan already has is an error
    ALLOW_SAME_STATUS_TRANSITION: bool = _env_flag("ALLOW_SAME_STATUS_TRANSITION", False)
    # "identity" resolves prerequisites by original id, "text" by question text
    PREREQUISITE_LINK_STRATEGY: str = os.getenv("PREREQUISITE_LINK_STRATEGY", "identity")


settings = Settings()
